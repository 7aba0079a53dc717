"""
SQLAlchemy models for issued barcode batches.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship
from doctrack.storage.base import Base


class Batch(Base):  # type: ignore
    """A block of document codes issued together.

    ``id`` is allocated by the issuer as the smallest free positive integer,
    never by the database.
    """

    __tablename__ = 'batch'

    id = Column(Integer, primary_key=True, autoincrement=False)
    office = Column(
        Integer,
        ForeignKey('office.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    generator = Column(String(255), ForeignKey('users.id'), nullable=False)
    creation = Column(DateTime, nullable=False)

    barcodes = relationship(
        'Barcode', back_populates='batch_row', cascade='all, delete-orphan'
    )


class Barcode(Base):  # type: ignore
    __tablename__ = 'barcode'

    code = Column(Uuid(as_uuid=True), primary_key=True)
    batch = Column(
        Integer,
        ForeignKey('batch.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    batch_row = relationship('Batch', back_populates='barcodes')
