from datetime import datetime

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from smartinvoice.database import Base


class StorageEntry(Base):
    """
    Anahtar-deger deposu satiri.
    Her anahtar icin tek bir serilestirilmis deger (ornegin tum faturalarin
    JSON dizisi) tutulur. Kismi yazma yok, her yazma degeri tamamen degistirir.
    """

    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(
        String(255), primary_key=True
    )
    value: Mapped[str] = mapped_column(
        Text, nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
