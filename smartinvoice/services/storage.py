"""
Anahtar-deger deposu (persistence adapter).

Fatura koleksiyonu tek bir anahtar altinda tek bir JSON blob olarak tutulur.
Repository bu modulun tanimladigi KeyValueStore arayuzune baglidir; boylece
SQLAlchemy deposu yerine baska bir arka uc (bellek, ag servisi vb.)
cagiran kod degismeden takilabilir.
"""
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from smartinvoice.models.storage_entry import StorageEntry


class StorageError(Exception):
    """Depo okuma/yazma hatasi."""


class KeyValueStore(Protocol):
    def read(self, key: str) -> str | None:
        ...

    def write(self, key: str, value: str) -> None:
        ...


class SqlAlchemyStore:
    """storage_entries tablosu uzerinde calisan depo."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def read(self, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                entry = db.get(StorageEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"'{key}' okunamadi: {e}") from e

    def write(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(StorageEntry, key)
                if entry is None:
                    db.add(StorageEntry(key=key, value=value))
                else:
                    entry.value = value
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"'{key}' yazilamadi: {e}") from e


class MemoryStore:
    """Bellekte tutulan depo (onizleme ve testler icin)."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value
