import uuid
from datetime import datetime, date
from typing import Literal

from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator
from pydantic.alias_generators import to_camel

from smartinvoice.services.pricing import line_total

InvoiceStatus = Literal["draft", "sent", "paid"]

# Depoya yazilan JSON anahtarlari camelCase (invoiceNumber, dueDate, ...)
CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


def _iso_date(value):
    """'2026-01-15T10:30:00.000Z' gibi ISO zaman damgalarini tarihe indirger."""
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if isinstance(value, datetime):
        return value.date()
    return value


class ClientInfo(BaseModel):
    """Musteri bilgisi. Format kontrolu yapilmaz, bos metin serbesttir."""

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    model_config = CAMEL_CONFIG


class InvoiceItem(BaseModel):
    """
    Fatura kalemi.
    total (satir toplami) her okumada quantity x price olarak hesaplanir,
    ayrica set edilemez. Depodaki "total" anahtari okunurken yok sayilir.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    quantity: float = 1
    price: float = 0

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    @computed_field
    @property
    def total(self) -> float:
        return line_total(self.quantity, self.price)


class InvoiceCreate(BaseModel):
    """Repository.create icin taslak. id, numara ve zaman damgalari burada yok."""

    invoice_date: date = Field(default_factory=date.today, alias="date")
    due_date: date
    client: ClientInfo = Field(default_factory=ClientInfo)
    items: list[InvoiceItem] = []
    tax_rate: float = 0
    discount_rate: float = 0
    status: InvoiceStatus = "draft"
    notes: str | None = None

    model_config = CAMEL_CONFIG

    normalize_dates = field_validator("invoice_date", "due_date", mode="before")(_iso_date)


class InvoiceUpdate(BaseModel):
    """
    Kismi guncelleme (patch).
    Sadece gonderilen alanlar kayda islenir (model_dump(exclude_unset=True)).
    Turetilmis alanlar (subtotal, total, ...) burada yok; kalemler veya
    oranlar degisirse repository yeniden hesaplar.
    """

    invoice_date: date | None = Field(default=None, alias="date")
    due_date: date | None = None
    client: ClientInfo | None = None
    items: list[InvoiceItem] | None = None
    tax_rate: float | None = None
    discount_rate: float | None = None
    status: InvoiceStatus | None = None
    notes: str | None = None

    model_config = CAMEL_CONFIG

    normalize_dates = field_validator("invoice_date", "due_date", mode="before")(_iso_date)


class Invoice(BaseModel):
    id: str
    invoice_number: str
    invoice_date: date = Field(alias="date")
    due_date: date
    client: ClientInfo = Field(default_factory=ClientInfo)
    items: list[InvoiceItem] = []
    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    discount_rate: float = 0
    discount_amount: float = 0
    total: float = 0
    status: InvoiceStatus = "draft"
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = CAMEL_CONFIG

    normalize_dates = field_validator("invoice_date", "due_date", mode="before")(_iso_date)


class DashboardStats(BaseModel):
    total_invoices: int = 0
    total_revenue: float = 0
    paid_invoices: int = 0
    pending_invoices: int = 0

    model_config = CAMEL_CONFIG
