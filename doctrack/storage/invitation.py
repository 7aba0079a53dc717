"""
SQLAlchemy model for an office invitation.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from doctrack.storage.base import Base


class Invitation(Base):  # type: ignore
    """An offer of office membership addressed to an email.

    At most one invitation exists per (office, email). Upserting an existing
    invitation overwrites its permission and refreshes ``creation``.
    """

    __tablename__ = 'invitation'

    office = Column(
        Integer,
        ForeignKey('office.id', ondelete='CASCADE'),
        primary_key=True,
    )
    email = Column(String(255), primary_key=True, index=True)
    permission = Column(Integer, nullable=False)
    creation = Column(DateTime, nullable=False)
