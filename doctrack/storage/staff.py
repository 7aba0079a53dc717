"""
SQLAlchemy model for office membership.
"""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from doctrack.storage.base import Base


class Staff(Base):  # type: ignore
    """Realized membership of a user in an office.

    Rows are only created by the registrar, one per consumed invitation.
    """

    __tablename__ = 'staff'

    user_id = Column(
        String(255),
        ForeignKey('users.id', ondelete='CASCADE'),
        primary_key=True,
    )
    office = Column(
        Integer,
        ForeignKey('office.id', ondelete='CASCADE'),
        primary_key=True,
    )
    permission = Column(Integer, nullable=False)

    user = relationship('User', back_populates='memberships')
