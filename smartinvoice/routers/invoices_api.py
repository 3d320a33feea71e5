"""
Fatura REST API Router'i.

Repository uzerindeki CRUD islemlerini ve dashboard ozetlerini sunar.
Repository "bulunamadi" durumunda hata firlatmaz (None/False doner);
404'e cevirme isi bu katmanda yapilir.

Endpoint'ler:
    GET    /                   -> Fatura listesi (en yeni once)
    GET    /stats              -> Dashboard istatistikleri
    GET    /recent             -> Son N fatura
    GET    /{invoice_id}       -> Fatura detay
    POST   /                   -> Taslaktan yeni fatura olustur
    PATCH  /{invoice_id}       -> Kismi guncelleme (durum dahil)
    DELETE /{invoice_id}       -> Fatura sil

Bu router main.py'de su sekilde eklenir:
    app.include_router(invoices_api.router, prefix="/api/v1/invoices", tags=["Faturalar API"])
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from smartinvoice.dependencies import get_repository
from smartinvoice.schemas.invoice import (
    ClientInfo,
    DashboardStats,
    Invoice,
    InvoiceItem,
    InvoiceUpdate,
    CAMEL_CONFIG,
)
from smartinvoice.services.draft import DraftValidationError, InvoiceDraft, validate_update
from smartinvoice.services.invoice_repository import InvalidStatusTransition, InvoiceRepository

router = APIRouter()


class InvoiceDraftRequest(BaseModel):
    """Olusturma formu. Vergi orani verilmezse varsayilan kullanilir."""
    client: ClientInfo = Field(default_factory=ClientInfo)
    items: list[InvoiceItem] = []
    tax_rate: float | None = None
    discount_rate: float = 0
    notes: str = ""
    due_date: date | None = None

    model_config = CAMEL_CONFIG


def _get_or_404(repo: InvoiceRepository, invoice_id: str) -> Invoice:
    invoice = repo.get(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("", response_model=list[Invoice])
def list_invoices(repo: Annotated[InvoiceRepository, Depends(get_repository)]):
    """Tum faturalar, en yeni olusturulan once."""
    return repo.invoices


@router.get("/stats", response_model=DashboardStats)
def get_stats(repo: Annotated[InvoiceRepository, Depends(get_repository)]):
    """
    Dashboard istatistikleri.
    totalRevenue sadece odenmis (paid) faturalarin toplamidir.
    """
    return repo.stats()


@router.get("/recent", response_model=list[Invoice])
def get_recent(
    repo: Annotated[InvoiceRepository, Depends(get_repository)],
    limit: int = Query(default=5, ge=1, le=100, description="Kac fatura"),
):
    return repo.recent(limit)


@router.get("/{invoice_id}", response_model=Invoice)
def get_invoice(
    invoice_id: str,
    repo: Annotated[InvoiceRepository, Depends(get_repository)],
):
    return _get_or_404(repo, invoice_id)


@router.post("", response_model=Invoice, status_code=status.HTTP_201_CREATED)
def create_invoice(
    body: InvoiceDraftRequest,
    repo: Annotated[InvoiceRepository, Depends(get_repository)],
):
    """
    Taslagi dogrula ve kaydet.

    - Musteri adi bos olamaz
    - En az bir kalem olmali
    - Her kalemin adi olmali
    Dogrulama hatasinda 422 doner ve hicbir sey kaydedilmez.
    """
    draft = InvoiceDraft(
        client=body.client,
        items=body.items,
        tax_rate=body.tax_rate,
        discount_rate=body.discount_rate,
        notes=body.notes,
        due_date=body.due_date,
    )
    try:
        return draft.save(repo)
    except DraftValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors,
        )


@router.patch("/{invoice_id}", response_model=Invoice)
def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    repo: Annotated[InvoiceRepository, Depends(get_repository)],
):
    """
    Gonderilen alanlari guncelle. Durum sadece ileri gidebilir (draft -> sent -> paid).
    Musteri veya kalemler gonderilirse olusturmadaki kurallarla dogrulanir (422).
    """
    errors = validate_update(body)
    if errors:
        raise HTTPException(status_code=422, detail=errors)
    try:
        invoice = repo.update(invoice_id, body)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: str,
    repo: Annotated[InvoiceRepository, Depends(get_repository)],
):
    if not repo.delete(invoice_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
