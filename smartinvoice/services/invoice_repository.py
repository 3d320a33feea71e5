"""
Fatura repository'si.

Oturum icindeki fatura koleksiyonunun tek kaynagi. Koleksiyon bellekte
tutulur ve her degisiklikte (create/update/delete) tamami depoya yazilir
(write-through). Birden fazla islemi kapsayan transaction yoktur.

Tutarlilik modeli zayiftir: create yazmadan hemen once koleksiyonu depodan
yeniden okur, update ve delete okumaz. Ayni depoya disaridan yazan biri
varsa update/delete onun degisikliklerini sessizce ezebilir.

Ayni repository nesnesi FastAPI thread havuzunda paylasilir; her degisiklik
(okuma, birlestirme ve yazma) tek bir kilit altinda calisir. Disariya
verilen kayitlar kopyadir, cagiran taraf onlari degistirse de koleksiyon
etkilenmez.
"""
import json
import logging
import random
import string
import threading
import time
import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from smartinvoice.config import settings
from smartinvoice.schemas.invoice import (
    DashboardStats,
    Invoice,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceUpdate,
)
from smartinvoice.services import pricing
from smartinvoice.services.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

# Durum sadece ileri gidebilir: draft -> sent -> paid (atlamak serbest)
STATUS_ORDER: dict[str, int] = {"draft": 0, "sent": 1, "paid": 2}

# Bu alanlardan biri degisirse turetilmis tutarlar yeniden hesaplanir
_PRICING_FIELDS = {"items", "tax_rate", "discount_rate"}


class InvalidStatusTransition(ValueError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invoice status cannot go back from '{current}' to '{requested}'")


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_invoice_number(timestamp_ms: int | None = None) -> str:
    """
    Otomatik fatura numarasi olustur.
    Format: INV-<milisaniye zaman damgasi base36>-<4 rastgele base36 karakter>
    Ornek: INV-MG3K2P1A-7QX2
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=4))
    return f"INV-{_to_base36(timestamp_ms)}-{suffix}"


def check_status_transition(current: InvoiceStatus, requested: InvoiceStatus) -> None:
    if STATUS_ORDER[requested] < STATUS_ORDER[current]:
        raise InvalidStatusTransition(current, requested)


class InvoiceRepository:
    def __init__(self, store: KeyValueStore, key: str | None = None):
        self.store = store
        self.key = key or settings.STORAGE_KEY
        self._invoices: list[Invoice] = []
        # create/update/delete'in oku-degistir-yaz adimlari birbirine karismasin
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._invoices)

    @property
    def invoices(self) -> list[Invoice]:
        """Koleksiyonun kopyasi, en yeni once."""
        with self._lock:
            return [inv.model_copy(deep=True) for inv in self._invoices]

    # ------------------------------------------------------------------
    # Depo senkronizasyonu
    # ------------------------------------------------------------------

    def _read(self) -> list[Invoice] | None:
        """
        Koleksiyonu depodan oku.
        Depo okunamazsa None doner. Bozuk blob bos koleksiyon sayilir;
        dogrulanamayan tek tek kayitlar atlanir.
        """
        try:
            raw = self.store.read(self.key)
        except StorageError as e:
            logger.error("Faturalar depodan okunamadi: %s", e)
            return None

        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Depodaki fatura verisi bozuk (JSON degil): %s", e)
            return []
        if not isinstance(data, list):
            logger.error("Depodaki fatura verisi bir dizi degil: %s", type(data).__name__)
            return []

        invoices = []
        for index, element in enumerate(data):
            try:
                invoices.append(Invoice.model_validate(element))
            except ValidationError as e:
                logger.warning("Gecersiz fatura kaydi atlandi (sira %d): %s", index, e)
        return invoices

    def _write(self) -> None:
        payload = json.dumps(
            [inv.model_dump(mode="json", by_alias=True) for inv in self._invoices],
            ensure_ascii=False,
        )
        try:
            self.store.write(self.key, payload)
        except StorageError as e:
            # Bellekteki degisiklik geri alinmaz; bir sonraki basarili yazmada esitlenir
            logger.error("Faturalar depoya yazilamadi: %s", e)

    def load(self) -> list[Invoice]:
        """Uygulama acilisinda koleksiyonu depodan yukle. Hata firlatmaz."""
        with self._lock:
            self._invoices = self._read() or []
            logger.info("%d fatura yuklendi", len(self._invoices))
            return self.invoices

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, draft: InvoiceCreate) -> Invoice:
        now = datetime.now(timezone.utc)
        totals = pricing.compute(draft.items, draft.tax_rate, draft.discount_rate)
        invoice = Invoice(
            id=str(uuid.uuid4()),
            invoice_number=generate_invoice_number(),
            invoice_date=draft.invoice_date,
            due_date=draft.due_date,
            client=draft.client.model_copy(deep=True),
            items=[item.model_copy(deep=True) for item in draft.items],
            subtotal=totals.subtotal,
            tax_rate=draft.tax_rate,
            tax_amount=totals.tax_amount,
            discount_rate=draft.discount_rate,
            discount_amount=totals.discount_amount,
            total=totals.total,
            status=draft.status,
            notes=draft.notes,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            # Baska bir yazarin eklediklerini kaybetmemek icin depodan tazele
            current = self._read()
            if current is None:
                current = self._invoices
            self._invoices = [invoice, *current]
            self._write()

        logger.info("Fatura '%s' olusturuldu (%s)", invoice.invoice_number, invoice.client.name)
        return invoice.model_copy(deep=True)

    def get(self, invoice_id: str) -> Invoice | None:
        with self._lock:
            invoice = next((inv for inv in self._invoices if inv.id == invoice_id), None)
            return invoice.model_copy(deep=True) if invoice is not None else None

    def update(self, invoice_id: str, patch: InvoiceUpdate) -> Invoice | None:
        """
        Patch'te gonderilen alanlari kayda isle, updated_at'i yenile.
        Kayit yoksa None doner (hata degil).
        Durum geriye giderse InvalidStatusTransition firlatir, kayit degismez.
        """
        changes = {}
        for field in patch.model_fields_set:
            value = getattr(patch, field)
            # notes disindaki alanlarda None "degistirme" demek
            if value is None and field != "notes":
                continue
            changes[field] = value

        if "client" in changes:
            changes["client"] = changes["client"].model_copy(deep=True)
        if "items" in changes:
            changes["items"] = [item.model_copy(deep=True) for item in changes["items"]]

        with self._lock:
            index = next(
                (i for i, inv in enumerate(self._invoices) if inv.id == invoice_id), None
            )
            if index is None:
                logger.info("Guncellenecek fatura bulunamadi: %s", invoice_id)
                return None
            invoice = self._invoices[index]

            if "status" in changes:
                check_status_transition(invoice.status, changes["status"])

            updated = invoice.model_copy(update=changes, deep=True)
            if _PRICING_FIELDS & changes.keys():
                totals = pricing.compute(updated.items, updated.tax_rate, updated.discount_rate)
                updated = updated.model_copy(update=totals._asdict())
            updated = updated.model_copy(update={"updated_at": datetime.now(timezone.utc)})

            self._invoices[index] = updated
            self._write()

        if "status" in changes and changes["status"] != invoice.status:
            logger.info(
                "Fatura '%s' durumu '%s' -> '%s' olarak degistirildi",
                updated.invoice_number, invoice.status, updated.status,
            )
        return updated.model_copy(deep=True)

    def delete(self, invoice_id: str) -> bool:
        """Kaydi kalici olarak sil. Kayit yoksa False doner."""
        with self._lock:
            remaining = [inv for inv in self._invoices if inv.id != invoice_id]
            if len(remaining) == len(self._invoices):
                logger.info("Silinecek fatura bulunamadi: %s", invoice_id)
                return False
            self._invoices = remaining
            self._write()
        logger.info("Fatura silindi: %s", invoice_id)
        return True

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def stats(self) -> DashboardStats:
        with self._lock:
            invoices = list(self._invoices)
        paid = [inv for inv in invoices if inv.status == "paid"]
        return DashboardStats(
            total_invoices=len(invoices),
            total_revenue=sum((inv.total for inv in paid), 0.0),
            paid_invoices=len(paid),
            pending_invoices=len(invoices) - len(paid),
        )

    def recent(self, limit: int = 5) -> list[Invoice]:
        with self._lock:
            return [inv.model_copy(deep=True) for inv in self._invoices[:limit]]
