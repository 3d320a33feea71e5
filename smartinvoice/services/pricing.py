"""
Fatura tutar hesaplamalari.

Tum aritmetik float ile yapilir, ara adimlarda yuvarlama yok.
Yuvarlama sadece gosterimde (format_currency) yapilir.
Oranlar [0, 100] araliginda beklenir ama kontrol edilmez; sinirlar arayuzun isi.
"""
from typing import Iterable, NamedTuple, Protocol

from smartinvoice.config import settings


class _Priced(Protocol):
    quantity: float
    price: float


class InvoiceTotals(NamedTuple):
    subtotal: float
    discount_amount: float
    tax_amount: float
    total: float


def line_total(quantity: float, price: float) -> float:
    return quantity * price


def compute(items: Iterable[_Priced], tax_rate: float, discount_rate: float) -> InvoiceTotals:
    """
    Kalemlerden ara toplam, indirim, vergi ve genel toplami hesapla.

    Vergi, indirim dusuldukten sonraki tutar uzerinden hesaplanir:
        1000 ara toplam, %10 indirim, %18 vergi
        -> indirim 100, vergi (1000 - 100) * 0.18 = 162, toplam 1062
    """
    subtotal = sum((line_total(item.quantity, item.price) for item in items), 0.0)
    discount_amount = subtotal * discount_rate / 100
    after_discount = subtotal - discount_amount
    tax_amount = after_discount * tax_rate / 100
    total = after_discount + tax_amount
    return InvoiceTotals(subtotal, discount_amount, tax_amount, total)


def format_currency(amount: float, symbol: str | None = None) -> str:
    """Gosterim icin 2 haneye yuvarla: 12000.5 -> '₹12,000.50'."""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
