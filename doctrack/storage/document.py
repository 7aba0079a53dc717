"""
SQLAlchemy model for a tracked document.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid
from doctrack.storage.base import Base


class Document(Base):  # type: ignore
    __tablename__ = 'document'

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(Integer, ForeignKey('category.id'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    # Each issued code backs at most one document
    barcode = Column(
        Uuid(as_uuid=True),
        ForeignKey('barcode.code'),
        nullable=True,
        unique=True,
    )
