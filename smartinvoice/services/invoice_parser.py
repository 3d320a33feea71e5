"""
Dogal dil fatura ayristirici.

Serbest metni ("2 monitor, tanesi 12000, %18 GST ve %10 indirim") OpenAI
uyumlu bir chat completions endpoint'ine gonderir ve donen JSON'u
dogrulanmis bir ParseResult'a cevirir.

Model deterministik degildir: ayni metin iki kez gonderilirse farkli
sonuc donebilir. Tekrar deneme ve streaming yok.
"""
import enum
import json
import logging
import threading
from typing import Any

import httpx

from smartinvoice.config import settings
from smartinvoice.schemas.parser import ParsedItem, ParseResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an invoice parsing assistant. Extract structured data from natural language invoice descriptions.

Always respond with a valid JSON object containing:
- items: Array of objects with { name: string, quantity: number, price: number }
- taxRate: number (percentage, e.g., 18 for 18%)
- discountRate: number (percentage, e.g., 10 for 10%)
- clientName: string (if mentioned)

Rules:
1. Parse quantities and prices carefully. "2 monitors at 12000 each" means quantity=2, price=12000
2. Look for tax mentions like "GST", "VAT", "tax" followed by percentages
3. Look for discount mentions followed by percentages
4. Extract client/company names if mentioned
5. If a value is not mentioned, omit it from the response
6. Always return valid JSON, nothing else

Examples:
Input: "2 monitors at 12000 each with 18% GST and 10% discount"
Output: {"items":[{"name":"Monitor","quantity":2,"price":12000}],"taxRate":18,"discountRate":10}

Input: "Web development 50 hours at 1500/hr for Acme Corp"
Output: {"items":[{"name":"Web Development","quantity":50,"price":1500}],"clientName":"Acme Corp"}"""

DEFAULT_ITEM_NAME = "Item"
DEFAULT_QUANTITY = 1.0
DEFAULT_PRICE = 0.0


class ParserErrorCategory(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"
    MALFORMED_RESPONSE = "malformed_response"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INVALID_PROMPT = "invalid_prompt"


# Her kategori icin kullaniciya gosterilecek mesaj
ERROR_MESSAGES: dict[ParserErrorCategory, str] = {
    ParserErrorCategory.RATE_LIMITED: "Rate limit exceeded. Please try again in a moment.",
    ParserErrorCategory.PAYMENT_REQUIRED: "AI credits exhausted. Please add credits to continue.",
    ParserErrorCategory.MALFORMED_RESPONSE: "Could not parse invoice details. Please try a clearer description.",
    ParserErrorCategory.SERVICE_UNAVAILABLE: "Failed to parse. Please try again.",
    ParserErrorCategory.INVALID_PROMPT: "Please enter a description",
}


class ParserError(Exception):
    """
    Kategorize edilmis ayristirma hatasi.
    Cagiran taraf hatayi asla "sifir kalem" olarak yorumlamamali.
    """

    def __init__(self, category: ParserErrorCategory, detail: str = ""):
        self.category = category
        self.detail = detail
        super().__init__(detail or self.message)

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.category]


class AssistantBusyError(Exception):
    """Bir ayristirma istegi zaten devam ediyor."""


def strip_code_fences(content: str) -> str:
    """```json ... ``` sarmalayicisini temizle."""
    text = content.strip()
    if text.startswith("```json"):
        text = text[7:]
    if text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _to_number(value: Any) -> float | None:
    """Sayiya cevir; bool, NaN ve cevrilemeyen degerler None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _coerce_item(raw: Any, index: int, warnings: list[str]) -> ParsedItem:
    if not isinstance(raw, dict):
        warnings.append(f"items[{index}] is not an object; defaults used")
        raw = {}

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_ITEM_NAME
        warnings.append(f"items[{index}].name missing; defaulted to '{DEFAULT_ITEM_NAME}'")

    quantity = _to_number(raw.get("quantity"))
    if quantity is None:
        quantity = DEFAULT_QUANTITY
        warnings.append(f"items[{index}].quantity missing or not a number; defaulted to 1")

    price = _to_number(raw.get("price"))
    if price is None:
        price = DEFAULT_PRICE
        warnings.append(f"items[{index}].price missing or not a number; defaulted to 0")

    return ParsedItem(name=name.strip(), quantity=quantity, price=price)


def _optional_rate(payload: dict, key: str, warnings: list[str]) -> float | None:
    if payload.get(key) is None:
        return None
    rate = _to_number(payload[key])
    if rate is None:
        warnings.append(f"{key} is not a number; ignored")
    return rate


def parse_model_content(content: str) -> ParseResult:
    """
    Modelin metin cevabini ParseResult'a cevir.
    Cevap JSON degilse ya da items dizisi yoksa MALFORMED_RESPONSE firlatir.
    """
    try:
        payload = json.loads(strip_code_fences(content))
    except ValueError as e:
        raise ParserError(ParserErrorCategory.MALFORMED_RESPONSE, f"AI cevabi JSON degil: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise ParserError(ParserErrorCategory.MALFORMED_RESPONSE, "AI cevabinda items dizisi yok")

    warnings: list[str] = []
    items = [_coerce_item(raw, i, warnings) for i, raw in enumerate(payload["items"])]

    client_name = payload.get("clientName")
    if client_name is not None and not isinstance(client_name, str):
        warnings.append("clientName is not a string; ignored")
        client_name = None

    return ParseResult(
        items=items,
        tax_rate=_optional_rate(payload, "taxRate", warnings),
        discount_rate=_optional_rate(payload, "discountRate", warnings),
        client_name=client_name.strip() if client_name and client_name.strip() else None,
        warnings=warnings,
    )


class InvoiceParser:
    """AI gateway istemcisi."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        api_key: str | None = None,
        gateway_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self.api_key = settings.AI_API_KEY if api_key is None else api_key
        self.gateway_url = gateway_url or settings.AI_GATEWAY_URL
        self.model = model or settings.AI_MODEL
        self.timeout = settings.AI_TIMEOUT if timeout is None else timeout

    def _post(self, body: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            return self._client.post(self.gateway_url, headers=headers, json=body, timeout=self.timeout)
        return httpx.post(self.gateway_url, headers=headers, json=body, timeout=self.timeout)

    def parse(self, prompt: str) -> ParseResult:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ParserError(ParserErrorCategory.INVALID_PROMPT, "Prompt bos")

        if not self.api_key:
            logger.error("AI_API_KEY ayarlanmamis")
            raise ParserError(ParserErrorCategory.SERVICE_UNAVAILABLE, "AI servisi yapilandirilmamis")

        logger.info("Fatura metni ayristiriliyor: %s", prompt)
        try:
            resp = self._post({
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                # Dusuk sicaklik: daha tutarli ayristirma
                "temperature": 0.1,
            })
        except httpx.HTTPError as e:
            logger.error("AI gateway'e ulasilamadi: %s", e)
            raise ParserError(ParserErrorCategory.SERVICE_UNAVAILABLE, str(e)) from e

        if resp.status_code == 429:
            logger.warning("AI gateway rate limit: %s", resp.text)
            raise ParserError(ParserErrorCategory.RATE_LIMITED, "HTTP 429")
        if resp.status_code == 402:
            logger.warning("AI gateway odeme gerekli: %s", resp.text)
            raise ParserError(ParserErrorCategory.PAYMENT_REQUIRED, "HTTP 402")
        if resp.is_error:
            logger.error("AI gateway hatasi: %d %s", resp.status_code, resp.text)
            raise ParserError(
                ParserErrorCategory.SERVICE_UNAVAILABLE, f"HTTP {resp.status_code}"
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("AI cevabinda icerik yok: %s", resp.text)
            raise ParserError(ParserErrorCategory.MALFORMED_RESPONSE, "AI cevabinda icerik yok") from e
        if not isinstance(content, str) or not content.strip():
            logger.error("AI cevabinda icerik yok")
            raise ParserError(ParserErrorCategory.MALFORMED_RESPONSE, "AI cevabinda icerik yok")

        logger.debug("AI cevap icerigi: %s", content)
        result = parse_model_content(content)
        if result.warnings:
            logger.warning("AI cevabinda duzeltilen alanlar: %s", "; ".join(result.warnings))
        return result


class InvoiceAssistant:
    """
    Ayristiriciyi tek aktif istekle sinirlar.
    Istek surerken busy True'dur ve yeni istek AssistantBusyError alir.
    Iptal yok: istek basari ya da hatayla biter.
    """

    def __init__(self, parser: InvoiceParser | None = None):
        self.parser = parser or InvoiceParser()
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def submit(self, prompt: str) -> ParseResult:
        if not self._lock.acquire(blocking=False):
            raise AssistantBusyError("Ayristirma istegi zaten devam ediyor")
        try:
            return self.parser.parse(prompt)
        finally:
            self._lock.release()
