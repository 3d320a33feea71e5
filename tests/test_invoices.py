"""
SmartInvoice - Fatura Repository Testleri

Test edilen fonksiyonlar (smartinvoice.services.invoice_repository):
    load      - depodan yukleme (bozuk veri / okuma hatasi toleransi)
    create    - olusturma, numara uretme, depoya yazma
    get       - detay
    update    - kismi guncelleme, durum gecisleri
    delete    - silme
    stats     - dashboard istatistikleri
    recent    - son faturalar

Ek olarak kaydet -> yeniden yukle dongusunde alanlarin birebir korunmasi test edilir.
"""

import json
import re
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from smartinvoice.schemas.invoice import ClientInfo, InvoiceItem, InvoiceUpdate
from smartinvoice.services.invoice_repository import (
    InvalidStatusTransition,
    InvoiceRepository,
    _to_base36,
    generate_invoice_number,
)
from smartinvoice.services.storage import MemoryStore

INVOICE_NUMBER_RE = re.compile(r"^INV-[0-9A-Z]+-[0-9A-Z]{4}$")


def _stored(store, key="test-invoices"):
    return json.loads(store.read(key))


class TestInvoiceNumber:

    def test_format(self):
        assert INVOICE_NUMBER_RE.match(generate_invoice_number())

    def test_sortable_by_creation_time(self):
        first = generate_invoice_number(1760000000000)
        second = generate_invoice_number(1760000000001)
        assert first.rsplit("-", 1)[0] < second.rsplit("-", 1)[0]

    def test_base36(self):
        assert _to_base36(0) == "0"
        assert _to_base36(35) == "Z"
        assert _to_base36(36) == "10"


class TestLoad:

    def test_load_empty_store(self, repo):
        assert repo.invoices == []
        assert len(repo) == 0

    def test_load_malformed_json(self, caplog):
        store = MemoryStore({"k": "{not json"})
        repo = InvoiceRepository(store, key="k")
        assert repo.load() == []
        assert "bozuk" in caplog.text

    def test_load_non_array(self):
        store = MemoryStore({"k": '{"items": []}'})
        assert InvoiceRepository(store, key="k").load() == []

    def test_load_read_failure_is_soft(self, flaky_store):
        repo = InvoiceRepository(flaky_store(fail_reads=True), key="k")
        assert repo.load() == []

    def test_load_skips_invalid_records(self, repo, store, make_draft):
        invoice = repo.create(make_draft())
        data = _stored(store)
        data.append({"id": "eksik-alanlar"})
        store.write("test-invoices", json.dumps(data))

        reloaded = InvoiceRepository(store, key="test-invoices")
        assert reloaded.load() == [invoice]

    def test_load_browser_blob(self):
        """Tarayici tarafinda yazilmis kayitlar (ISO zaman damgasi, fazladan alanlar) okunabilmeli."""
        blob = [{
            "id": "6f1c0e9a-1d3b-4b8e-9a51-2f4e3c1b7d10",
            "invoiceNumber": "INV-MG3K2P1A-7QX2",
            "date": "2026-01-15T10:30:00.000Z",
            "dueDate": "2026-02-14T00:00:00.000Z",
            "client": {"name": "Acme Corp", "email": "", "phone": "", "address": ""},
            "items": [{"id": "a1", "name": "Monitor", "quantity": 2, "price": 12000, "total": 24000}],
            "subtotal": 24000,
            "taxRate": 18,
            "taxAmount": 4320,
            "discountRate": 0,
            "discountAmount": 0,
            "total": 28320,
            "status": "sent",
            "createdAt": "2026-01-15T10:30:00.000Z",
            "updatedAt": "2026-01-15T10:30:00.000Z",
            "theme": "dark",
        }]
        repo = InvoiceRepository(MemoryStore({"k": json.dumps(blob)}), key="k")
        [invoice] = repo.load()
        assert invoice.invoice_date == date(2026, 1, 15)
        assert invoice.due_date == date(2026, 2, 14)
        assert invoice.notes is None
        assert invoice.items[0].total == 24000
        assert invoice.total == 28320


class TestCreateInvoice:

    def test_create_invoice(self, repo, store, make_draft):
        invoice = repo.create(make_draft(notes="Test faturasi"))

        assert invoice.id
        assert INVOICE_NUMBER_RE.match(invoice.invoice_number)
        assert invoice.created_at == invoice.updated_at
        assert invoice.client.name == "Acme Corp"
        assert invoice.invoice_date == date(2026, 1, 15)
        assert invoice.due_date == date(2026, 2, 14)
        assert invoice.status == "draft"
        assert invoice.notes == "Test faturasi"
        assert len(invoice.items) == 1

        # Depoya hemen yazilmis olmali
        data = _stored(store)
        assert len(data) == 1
        assert data[0]["invoiceNumber"] == invoice.invoice_number
        assert data[0]["items"][0]["total"] == 1000

    def test_create_computes_totals(self, repo, make_draft):
        invoice = repo.create(make_draft(tax_rate=18, discount_rate=10))
        assert invoice.subtotal == 1000
        assert invoice.discount_amount == 100
        assert invoice.tax_amount == 162
        assert invoice.total == 1062

    def test_get_returns_created(self, repo, make_draft):
        invoice = repo.create(make_draft())
        assert repo.get(invoice.id) == invoice

    def test_ids_and_numbers_unique(self, repo, make_draft):
        invoices = [repo.create(make_draft()) for _ in range(20)]
        assert len({inv.id for inv in invoices}) == 20
        assert len({inv.invoice_number for inv in invoices}) == 20

    def test_create_prepends(self, repo, make_draft):
        first = repo.create(make_draft(client_name="Birinci"))
        second = repo.create(make_draft(client_name="Ikinci"))
        assert repo.invoices == [second, first]

    def test_client_copied_by_value(self, repo, make_draft):
        draft = make_draft()
        invoice = repo.create(draft)
        draft.client.name = "Degisti"
        draft.items[0].name = "Degisti"
        assert invoice.client.name == "Acme Corp"
        assert invoice.items[0].name == "Consulting"

    def test_create_rereads_store(self, store, make_draft):
        """Baska bir yazarin ekledigi fatura create sirasinda kaybolmamali."""
        ours = InvoiceRepository(store, key="test-invoices")
        ours.load()
        other = InvoiceRepository(store, key="test-invoices")
        other.load()

        external = other.create(make_draft(client_name="Disaridan"))
        mine = ours.create(make_draft(client_name="Bizden"))

        assert ours.invoices == [mine, external]
        assert len(_stored(store)) == 2

    def test_create_with_unreadable_store_keeps_memory(self, flaky_store, make_draft):
        store = flaky_store()
        repo = InvoiceRepository(store, key="k")
        repo.load()
        first = repo.create(make_draft())
        store.fail_reads = True
        second = repo.create(make_draft())
        assert repo.invoices == [second, first]

    def test_write_failure_is_soft(self, flaky_store, make_draft, caplog):
        repo = InvoiceRepository(flaky_store(fail_writes=True), key="k")
        repo.load()
        invoice = repo.create(make_draft())
        # Bellekteki degisiklik geri alinmaz
        assert repo.get(invoice.id) == invoice
        assert "yazilamadi" in caplog.text


class TestUpdateInvoice:

    def test_update_merges_fields(self, repo, make_draft):
        invoice = repo.create(make_draft())
        other = repo.create(make_draft(client_name="Diger"))

        updated = repo.update(invoice.id, InvoiceUpdate(notes="Odeme 30 gun", status="sent"))

        assert updated.notes == "Odeme 30 gun"
        assert updated.status == "sent"
        assert updated.id == invoice.id
        assert updated.invoice_number == invoice.invoice_number
        assert updated.created_at == invoice.created_at
        assert updated.updated_at >= invoice.updated_at
        assert updated.client == invoice.client
        assert repo.get(invoice.id) == updated
        assert repo.get(other.id) == other

    def test_update_persists(self, repo, store, make_draft):
        invoice = repo.create(make_draft())
        repo.update(invoice.id, InvoiceUpdate(status="paid"))
        assert _stored(store)[0]["status"] == "paid"

    def test_update_items_recomputes_totals(self, repo, make_draft):
        invoice = repo.create(make_draft(tax_rate=18))
        updated = repo.update(
            invoice.id,
            InvoiceUpdate(items=[InvoiceItem(name="Laptop", quantity=2, price=45000)]),
        )
        assert updated.subtotal == 90000
        assert updated.tax_amount == 16200
        assert updated.total == 106200

    def test_update_rate_recomputes_totals(self, repo, make_draft):
        invoice = repo.create(make_draft())
        updated = repo.update(invoice.id, InvoiceUpdate(discount_rate=10))
        assert updated.discount_amount == 100
        assert updated.total == 900

    def test_update_client_replaces_snapshot(self, repo, make_draft):
        invoice = repo.create(make_draft())
        updated = repo.update(invoice.id, InvoiceUpdate(client=ClientInfo(name="Yeni Musteri")))
        assert updated.client.name == "Yeni Musteri"
        assert updated.client.email == ""

    def test_update_can_clear_notes(self, repo, make_draft):
        invoice = repo.create(make_draft(notes="Silinecek"))
        updated = repo.update(invoice.id, InvoiceUpdate(notes=None))
        assert updated.notes is None

    def test_update_unknown_id_is_soft(self, repo, store, make_draft):
        repo.create(make_draft())
        before = store.read("test-invoices")
        assert repo.update("olmayan-id", InvoiceUpdate(status="paid")) is None
        assert store.read("test-invoices") == before

    def test_status_can_skip_forward(self, repo, make_draft):
        invoice = repo.create(make_draft())
        assert repo.update(invoice.id, InvoiceUpdate(status="paid")).status == "paid"

    def test_status_cannot_go_back(self, repo, make_draft):
        invoice = repo.create(make_draft())
        repo.update(invoice.id, InvoiceUpdate(status="paid"))
        with pytest.raises(InvalidStatusTransition):
            repo.update(invoice.id, InvoiceUpdate(status="draft", notes="x"))
        assert repo.get(invoice.id).status == "paid"
        assert repo.get(invoice.id).notes is None


class TestDeleteInvoice:

    def test_delete_invoice(self, repo, store, make_draft):
        invoice = repo.create(make_draft())
        repo.create(make_draft())
        assert repo.delete(invoice.id) is True
        assert repo.get(invoice.id) is None
        assert len(repo) == 1
        assert len(_stored(store)) == 1

    def test_delete_unknown_id_is_soft(self, repo, make_draft):
        repo.create(make_draft())
        assert repo.delete("olmayan-id") is False
        assert len(repo) == 1


class TestStats:

    def test_stats_empty(self, repo):
        stats = repo.stats()
        assert stats.total_invoices == 0
        assert stats.total_revenue == 0
        assert stats.paid_invoices == 0
        assert stats.pending_invoices == 0

    def test_stats(self, repo, make_draft):
        paid_1 = repo.create(make_draft(items=[("A", 1, 100)]))
        paid_2 = repo.create(make_draft(items=[("B", 1, 200)]))
        repo.create(make_draft(items=[("C", 1, 5000)], status="sent"))
        repo.update(paid_1.id, InvoiceUpdate(status="paid"))
        repo.update(paid_2.id, InvoiceUpdate(status="paid"))

        stats = repo.stats()
        assert stats.total_invoices == 3
        assert stats.total_revenue == 300
        assert stats.paid_invoices == 2
        assert stats.pending_invoices == 1

    def test_recent(self, repo, make_draft):
        invoices = [repo.create(make_draft(client_name=f"Musteri {i}")) for i in range(7)]
        recent = repo.recent(5)
        assert len(recent) == 5
        assert recent == list(reversed(invoices))[:5]
        assert repo.recent(2) == recent[:2]


class TestRoundTrip:

    def test_persist_reload_identical(self, repo, store, make_draft):
        """Kaydet -> yeniden yukle: turetilmis tutarlar dahil tum alanlar birebir ayni."""
        repo.create(make_draft(items=[("Hassas", 3, 33.33), ("Kucuk", 7, 0.1)], tax_rate=18, discount_rate=7.5))
        repo.create(make_draft(items=[("Saat", 1.5, 1499.99)], tax_rate=12.5, notes="Not"))
        third = repo.create(make_draft(items=[("Bos", 0, 19.99)], discount_rate=33))
        repo.update(third.id, InvoiceUpdate(status="sent"))

        reloaded = InvoiceRepository(store, key="test-invoices")
        reloaded.load()

        assert reloaded.invoices == repo.invoices
        for before, after in zip(repo.invoices, reloaded.invoices):
            assert after.total == before.total
            assert after.tax_amount == before.tax_amount
            assert after.updated_at == before.updated_at


class TestReturnedCopies:
    """Disariya verilen kayitlar uzerindeki degisiklikler koleksiyona sizmamali."""

    def test_get_returns_copy(self, repo, store, make_draft):
        invoice = repo.create(make_draft())
        got = repo.get(invoice.id)
        got.items[0].quantity = 10
        got.client.name = "Degisti"

        repo.update(invoice.id, InvoiceUpdate(notes="x"))

        stored = _stored(store)[0]
        assert stored["items"][0]["total"] == 1000
        assert stored["subtotal"] == sum(item["total"] for item in stored["items"])
        assert stored["client"]["name"] == "Acme Corp"

    def test_collection_accessors_return_copies(self, repo, make_draft):
        invoice = repo.create(make_draft())
        repo.invoices[0].items[0].price = 1
        repo.recent(1)[0].items[0].price = 1
        invoice.items[0].price = 1
        assert repo.get(invoice.id).subtotal == 1000
        assert repo.get(invoice.id).items[0].price == 500

    def test_update_result_is_copy(self, repo, make_draft):
        invoice = repo.create(make_draft())
        updated = repo.update(invoice.id, InvoiceUpdate(status="sent"))
        updated.items[0].quantity = 99
        assert repo.get(invoice.id).items[0].quantity == 2


class SlowReadStore(MemoryStore):
    """Okumayi yavaslatarak es zamanli yazmalarin birbirine karismasini kolaylastirir."""

    def read(self, key):
        time.sleep(0.01)
        return super().read(key)


class TestConcurrency:

    def test_parallel_creates_all_persisted(self, make_draft):
        store = SlowReadStore()
        repo = InvoiceRepository(store, key="k")
        repo.load()

        with ThreadPoolExecutor(max_workers=8) as pool:
            created = list(pool.map(lambda i: repo.create(make_draft(client_name=f"Musteri {i}")), range(8)))

        stored = _stored(store, key="k")
        assert len(stored) == 8
        assert {inv["id"] for inv in stored} == {inv.id for inv in created}
        assert len(repo) == 8

    def test_parallel_updates_and_deletes(self, make_draft):
        store = SlowReadStore()
        repo = InvoiceRepository(store, key="k")
        repo.load()
        invoices = [repo.create(make_draft()) for _ in range(6)]

        def work(invoice):
            if invoices.index(invoice) % 2:
                return repo.delete(invoice.id)
            return repo.update(invoice.id, InvoiceUpdate(status="paid"))

        with ThreadPoolExecutor(max_workers=6) as pool:
            list(pool.map(work, invoices))

        stored = _stored(store, key="k")
        assert len(stored) == 3
        assert all(inv["status"] == "paid" for inv in stored)
