"""
Duzenlenmekte olan fatura taslagi.

Form durumunu (musteri, kalemler, oranlar, notlar, vade) tutar, AI
sonucunu taslaga uygular ve kaydetmeden once dogrular.
"""
from datetime import date, datetime, timedelta, timezone

from smartinvoice.config import settings
from smartinvoice.schemas.invoice import ClientInfo, Invoice, InvoiceCreate, InvoiceItem, InvoiceUpdate
from smartinvoice.schemas.parser import ParseResult
from smartinvoice.services import pricing
from smartinvoice.services.invoice_repository import InvoiceRepository

CLIENT_NAME_REQUIRED = "Please enter a client name"
ITEMS_REQUIRED = "Please add at least one item"
ITEM_NAME_REQUIRED = "Please enter a name for all items"


class DraftValidationError(ValueError):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def _client_errors(client: ClientInfo) -> list[str]:
    return [] if client.name.strip() else [CLIENT_NAME_REQUIRED]


def _item_errors(items: list[InvoiceItem]) -> list[str]:
    errors = []
    if not items:
        errors.append(ITEMS_REQUIRED)
    if any(not item.name.strip() for item in items):
        errors.append(ITEM_NAME_REQUIRED)
    return errors


def validate_update(patch: InvoiceUpdate) -> list[str]:
    """
    Kayitli faturaya gelen patch icin kaydetme kurallari.
    Sadece patch'te gonderilen musteri ve kalemler kontrol edilir.
    """
    errors = []
    if patch.client is not None:
        errors += _client_errors(patch.client)
    if patch.items is not None:
        errors += _item_errors(patch.items)
    return errors


class InvoiceDraft:
    def __init__(
        self,
        client: ClientInfo | None = None,
        items: list[InvoiceItem] | None = None,
        tax_rate: float | None = None,
        discount_rate: float = 0,
        notes: str = "",
        due_date: date | None = None,
    ):
        self.client = client or ClientInfo()
        self.items = list(items or [])
        self.tax_rate = settings.DEFAULT_TAX_RATE if tax_rate is None else tax_rate
        self.discount_rate = discount_rate
        self.notes = notes
        self.due_date = due_date or date.today() + timedelta(days=settings.DEFAULT_DUE_DAYS)

    # ------------------------------------------------------------------
    # Kalemler
    # ------------------------------------------------------------------

    def add_item(self, name: str = "", quantity: float = 1, price: float = 0) -> InvoiceItem:
        item = InvoiceItem(name=name, quantity=quantity, price=price)
        self.items.append(item)
        return item

    def update_item(self, item_id: str, **fields) -> InvoiceItem | None:
        """name, quantity, price guncellenir; satir toplami kendiliginden izler."""
        item = next((i for i in self.items if i.id == item_id), None)
        if item is None:
            return None
        for field in ("name", "quantity", "price"):
            if field in fields:
                setattr(item, field, fields[field])
        return item

    def remove_item(self, item_id: str) -> None:
        self.items = [i for i in self.items if i.id != item_id]

    def totals(self) -> pricing.InvoiceTotals:
        return pricing.compute(self.items, self.tax_rate, self.discount_rate)

    # ------------------------------------------------------------------
    # AI sonucu
    # ------------------------------------------------------------------

    def apply(self, result: ParseResult) -> None:
        """
        AI sonucunu taslaga uygula.

        - Kalemler sadece sonuc bos degilse tamamen degistirilir.
        - Vergi/indirim orani sadece sonucta varsa ezilir.
        - Musteri adi sadece sonucta varsa ve bos degilse ezilir;
          musterinin diger alanlarina dokunulmaz.
        """
        if result.items:
            self.items = [
                InvoiceItem(name=item.name, quantity=item.quantity, price=item.price)
                for item in result.items
            ]
        if result.tax_rate is not None:
            self.tax_rate = result.tax_rate
        if result.discount_rate is not None:
            self.discount_rate = result.discount_rate
        if result.client_name:
            self.client = self.client.model_copy(update={"name": result.client_name})

    # ------------------------------------------------------------------
    # Kaydetme
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        return _client_errors(self.client) + _item_errors(self.items)

    def to_create(self) -> InvoiceCreate:
        return InvoiceCreate(
            invoice_date=date.today(),
            due_date=self.due_date,
            client=self.client,
            items=self.items,
            tax_rate=self.tax_rate,
            discount_rate=self.discount_rate,
            status="draft",
            notes=self.notes,
        )

    def save(self, repository: InvoiceRepository) -> Invoice:
        """Dogrulama hatasi varsa DraftValidationError; repository degismez."""
        errors = self.validate()
        if errors:
            raise DraftValidationError(errors)
        return repository.create(self.to_create())

    def preview(self) -> Invoice:
        """Kaydedilmemis onizleme faturasi."""
        totals = self.totals()
        now = datetime.now(timezone.utc)
        return Invoice(
            id="preview",
            invoice_number="INV-PREVIEW",
            invoice_date=date.today(),
            due_date=self.due_date,
            client=self.client,
            items=self.items,
            subtotal=totals.subtotal,
            tax_rate=self.tax_rate,
            tax_amount=totals.tax_amount,
            discount_rate=self.discount_rate,
            discount_amount=totals.discount_amount,
            total=totals.total,
            status="draft",
            notes=self.notes,
            created_at=now,
            updated_at=now,
        )
