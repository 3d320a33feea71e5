"""
SmartInvoice - Test Yapilandirmasi (conftest.py)

SQLite in-memory veritabani kullanarak gercek bir dosya olusturmadan
anahtar-deger deposunu, repository'yi ve API endpoint'lerini test etmeye
olanak saglar. AI gateway istekleri httpx.MockTransport ile taklit edilir.

Her test fonksiyonu icin temiz bir veritabani olusturulur (function scope).
"""

from datetime import date

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from smartinvoice.database import Base
from smartinvoice.dependencies import get_assistant, get_repository
from smartinvoice.main import app
from smartinvoice.rate_limit import limiter
from smartinvoice.schemas.invoice import ClientInfo, InvoiceCreate, InvoiceItem
from smartinvoice.services.invoice_parser import InvoiceAssistant, InvoiceParser
from smartinvoice.services.invoice_repository import InvoiceRepository
from smartinvoice.services.storage import MemoryStore, SqlAlchemyStore, StorageError

# Tum modelleri import et - Base.metadata.create_all icin gerekli
from smartinvoice.models import StorageEntry  # noqa: F401


# ---------------------------------------------------------------------------
# SQLite In-Memory Test Veritabani
# ---------------------------------------------------------------------------

# StaticPool: tum oturumlar ayni in-memory baglantiyi paylasir
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


# ---------------------------------------------------------------------------
# Yardimci depolar
# ---------------------------------------------------------------------------

class FlakyStore(MemoryStore):
    """Istege bagli olarak okuma ve/veya yazmada StorageError firlatan depo."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False, initial=None):
        super().__init__(initial)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def read(self, key):
        if self.fail_reads:
            raise StorageError("okuma kapali")
        return super().read(key)

    def write(self, key, value):
        if self.fail_writes:
            raise StorageError("yazma kapali")
        super().write(key, value)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def session_factory():
    """
    Her test icin temiz bir veritabani.

    - Tablolari olusturur (create_all)
    - Test bittikten sonra tablolari siler (drop_all)
    """
    Base.metadata.create_all(bind=test_engine)
    try:
        yield TestSessionLocal
    finally:
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture(scope="function")
def repo(store):
    """Bos, yuklenmis bir repository."""
    repository = InvoiceRepository(store, key="test-invoices")
    repository.load()
    return repository


@pytest.fixture
def make_draft():
    """
    InvoiceCreate ureticisi.
    Varsayilan: Acme Corp icin 2 x 500 tutarinda tek kalem, vergi/indirim yok.
    """
    def _make(
        client_name: str = "Acme Corp",
        items: list[tuple[str, float, float]] | None = None,
        tax_rate: float = 0,
        discount_rate: float = 0,
        **extra,
    ) -> InvoiceCreate:
        if items is None:
            items = [("Consulting", 2, 500)]
        return InvoiceCreate(
            invoice_date=date(2026, 1, 15),
            due_date=date(2026, 2, 14),
            client=ClientInfo(name=client_name, email="billing@acme.test"),
            items=[InvoiceItem(name=n, quantity=q, price=p) for n, q, p in items],
            tax_rate=tax_rate,
            discount_rate=discount_rate,
            **extra,
        )
    return _make


@pytest.fixture
def make_parser():
    """MockTransport handler'i ile calisan InvoiceParser ureticisi."""
    def _make(handler, api_key: str = "test-key") -> InvoiceParser:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return InvoiceParser(client=client, api_key=api_key, gateway_url=GATEWAY_URL, model="test-model")
    return _make


@pytest.fixture(scope="function")
def client(repo):
    """
    FastAPI TestClient olusturur.

    get_repository dependency'sini override ederek test repository'sini kullanir.
    AI asistani varsayilan olarak API anahtarsiz bir parser ile gelir;
    testler get_assistant'i kendileri override eder.
    """
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_assistant] = lambda: InvoiceAssistant(InvoiceParser(api_key=""))
    limiter.reset()

    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

    # Override'lari temizle
    app.dependency_overrides.clear()


@pytest.fixture
def flaky_store():
    """Hata enjekte edilebilen depo sinifi."""
    return FlakyStore
