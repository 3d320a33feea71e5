"""AI fatura ayristirici API router'i."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from smartinvoice.config import settings
from smartinvoice.dependencies import get_assistant
from smartinvoice.rate_limit import limiter
from smartinvoice.schemas.parser import ParseRequest, ParseResult
from smartinvoice.services.invoice_parser import (
    AssistantBusyError,
    InvoiceAssistant,
    ParserError,
    ParserErrorCategory,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# Hata kategorisi -> HTTP durum kodu
_STATUS_CODES = {
    ParserErrorCategory.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ParserErrorCategory.PAYMENT_REQUIRED: status.HTTP_402_PAYMENT_REQUIRED,
    ParserErrorCategory.MALFORMED_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ParserErrorCategory.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ParserErrorCategory.INVALID_PROMPT: status.HTTP_400_BAD_REQUEST,
}


@router.post(
    "/parse-invoice",
    response_model=ParseResult,
    response_model_exclude_none=True,
)
@limiter.limit(settings.AI_RATE_LIMIT)
def parse_invoice(
    request: Request,
    body: ParseRequest,
    assistant: Annotated[InvoiceAssistant, Depends(get_assistant)],
):
    """
    Serbest metinden fatura kalemlerini cikar.

    Metinde gecmeyen taxRate / discountRate / clientName alanlari
    cevapta hic yer almaz. Hata durumunda cevap {"detail", "category"} icerir.
    """
    try:
        return assistant.submit(body.prompt)
    except AssistantBusyError:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "A parse request is already in progress.", "category": "busy"},
        )
    except ParserError as e:
        logger.warning("Ayristirma basarisiz (%s): %s", e.category.value, e.detail)
        return JSONResponse(
            status_code=_STATUS_CODES[e.category],
            content={"detail": e.message, "category": e.category.value},
        )
