"""
SQLAlchemy model for a registered user.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from doctrack.storage.base import Base


class User(Base):  # type: ignore
    __tablename__ = 'users'

    # Subject identifier issued by the identity provider
    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)

    memberships = relationship('Staff', back_populates='user')
