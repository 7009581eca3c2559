from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from drivedesk.db import Base


class _DocumentColumns:
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    data_json: Mapped[str] = mapped_column(Text, default='{}')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class StudentDocument(_DocumentColumns, Base):
    __tablename__ = 'students'


class ClassDocument(_DocumentColumns, Base):
    __tablename__ = 'classes'


class PaymentDocument(_DocumentColumns, Base):
    __tablename__ = 'payments'


COLLECTIONS: dict[str, type[_DocumentColumns]] = {
    'students': StudentDocument,
    'classes': ClassDocument,
    'payments': PaymentDocument,
}
