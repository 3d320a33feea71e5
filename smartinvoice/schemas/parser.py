from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

PARSE_RESULT_SCHEMA_VERSION = 1


class ParseRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=2000)


class ParsedItem(BaseModel):
    name: str
    quantity: float
    price: float


class ParseResult(BaseModel):
    """
    AI ayristiricinin dogrulanmis cevabi.

    tax_rate, discount_rate ve client_name metinde gecmiyorsa None kalir
    (JSON cikisinda hic yazilmaz); boylece "acikca sifir" ile "hic
    belirtilmedi" ayirt edilebilir. warnings, varsayilan degerle
    doldurulan ya da atilan alanlari listeler.
    """

    schema_version: int = PARSE_RESULT_SCHEMA_VERSION
    items: list[ParsedItem]
    tax_rate: float | None = None
    discount_rate: float | None = None
    client_name: str | None = None
    warnings: list[str] = []

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
