from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from smartinvoice.config import settings

# Engine: anahtar-deger deposunun baglantisini yoneten nesne
# SQLite dosyasi FastAPI thread'leri arasinda paylasilir
_connect_args = {"check_same_thread": False} if settings.STORAGE_URL.startswith("sqlite") else {}
engine = create_engine(settings.STORAGE_URL, echo=False, connect_args=_connect_args)

# SessionLocal: her okuma/yazma icin kisa omurlu bir oturum acar
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Base: tum modellerin miras alacagi temel sinif
class Base(DeclarativeBase):
    pass


def init_db() -> None:
    """Tablolari olustur (migration yok, tek tablo)."""
    import smartinvoice.models  # noqa: F401 - Tum modellerin yuklenmesi icin

    Base.metadata.create_all(bind=engine)
