"""
SQLAlchemy model for an office.
"""

from sqlalchemy import Column, Integer, String
from doctrack.storage.base import Base


class Office(Base):  # type: ignore
    __tablename__ = 'office'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
