"""
SQLAlchemy model for a document category.
"""

from sqlalchemy import Column, Integer, String, text
from doctrack.storage.base import Base


class Category(Base):  # type: ignore
    """Classification tag for documents.

    Categories move between three states:

    - active: listed and assignable to new documents
    - deprecated: hidden and not assignable, but can be activated again
    - deleted: terminal, only reachable while no document references it
    """

    __tablename__ = 'category'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    state = Column(
        String(16),
        nullable=False,
        server_default=text("'active'"),
        index=True,
    )

    # State constants
    STATE_ACTIVE = 'active'
    STATE_DEPRECATED = 'deprecated'
    STATE_DELETED = 'deleted'
