import threading

from fastapi import Request
from slowapi.util import get_remote_address

from smartinvoice.database import SessionLocal, init_db
from smartinvoice.services.invoice_parser import InvoiceAssistant, InvoiceParser
from smartinvoice.services.invoice_repository import InvoiceRepository
from smartinvoice.services.storage import SqlAlchemyStore

# Uygulama boyunca tek bir repository kullanilir
_repository: InvoiceRepository | None = None

# Asistanlar istemci (IP) bazinda tutulur; busy bayragi istemciye ozeldir
_MAX_ASSISTANTS = 1024
_assistants: dict[str, InvoiceAssistant] = {}
_assistants_lock = threading.Lock()
_parser: InvoiceParser | None = None


def get_repository() -> InvoiceRepository:
    """
    FastAPI dependency olarak kullanilir.
    Ilk cagrida tabloyu olusturur ve koleksiyonu depodan yukler.

    Kullanim:
        @router.get("/")
        def endpoint(repo: InvoiceRepository = Depends(get_repository)):
            ...
    """
    global _repository
    if _repository is None:
        init_db()
        _repository = InvoiceRepository(SqlAlchemyStore(SessionLocal))
        _repository.load()
    return _repository


def get_assistant(request: Request) -> InvoiceAssistant:
    """
    Istegi yapan istemcinin asistani.
    Bir istemcinin devam eden ayristirmasi diger istemcileri bekletmez;
    ayni istemciden gelen ikinci istek ise busy (409) alir.
    """
    global _parser
    key = get_remote_address(request)
    with _assistants_lock:
        assistant = _assistants.get(key)
        if assistant is None:
            if len(_assistants) >= _MAX_ASSISTANTS:
                # Bosta olanlari at, devam eden istekler korunur
                for idle in [k for k, a in _assistants.items() if not a.busy]:
                    del _assistants[idle]
            if _parser is None:
                _parser = InvoiceParser()
            assistant = InvoiceAssistant(_parser)
            _assistants[key] = assistant
    return assistant
