"""
SQLAlchemy model for a pending session.
"""

from sqlalchemy import Column, DateTime, LargeBinary, Uuid
from doctrack.storage.base import Base

NONCE_MAX_BYTES = 65


class Pending(Base):  # type: ignore
    """An OAuth handshake that has started but not completed.

    Exactly one row exists per in-flight login attempt. The row is removed in
    the same transaction that creates the matching ``session`` row.
    """

    __tablename__ = 'pending'

    id = Column(Uuid(as_uuid=True), primary_key=True)
    nonce = Column(LargeBinary(NONCE_MAX_BYTES), nullable=False)
    expiration = Column(DateTime, nullable=False)
