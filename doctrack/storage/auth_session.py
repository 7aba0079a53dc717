"""
SQLAlchemy model for an authenticated session.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from doctrack.storage.base import Base


class AuthSession(Base):  # type: ignore
    """A session that went through the full OAuth flow.

    Only created by consuming a ``pending`` row with the same id.
    """

    __tablename__ = 'session'

    id = Column(Uuid(as_uuid=True), primary_key=True)
    user_id = Column(
        String(255),
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    expiration = Column(DateTime, nullable=False)
    access_token = Column(Text, nullable=False)

    user = relationship('User')
