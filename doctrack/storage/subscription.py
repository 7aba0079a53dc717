"""
SQLAlchemy models for web push subscriptions.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from doctrack.storage.base import Base


class Subscription(Base):  # type: ignore
    __tablename__ = 'subscription'

    endpoint = Column(String(2048), primary_key=True)
    # NULL means the subscription never expires
    expiration = Column(DateTime, nullable=True)


class DocumentSubscription(Base):  # type: ignore
    """Binds a push subscription to a document it wants updates for."""

    __tablename__ = 'document_subscription'

    endpoint = Column(
        String(2048),
        ForeignKey('subscription.endpoint', ondelete='CASCADE'),
        primary_key=True,
    )
    document = Column(
        Integer,
        ForeignKey('document.id', ondelete='CASCADE'),
        primary_key=True,
    )
