"""Store class for web push subscriptions and their document bindings."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.database import dialect_insert
from doctrack.storage.subscription import DocumentSubscription, Subscription
from doctrack.storage.unit_of_work import unit_of_work


@dataclass
class SubscriptionStore:
    session_maker: sessionmaker

    def push_subscription(self, endpoint: str, expiration: datetime | None) -> None:
        """Register a push subscription, or refresh the expiration of a known one.

        Args:
            endpoint: Push service endpoint URL
            expiration: When the subscription lapses; None if it never does
        """
        with unit_of_work(self.session_maker, operation='push_subscription') as session:
            stmt = dialect_insert(session, Subscription).values(
                endpoint=endpoint, expiration=expiration
            )
            session.execute(
                stmt.on_conflict_do_update(
                    index_elements=['endpoint'],
                    set_={'expiration': expiration},
                )
            )
        logger.info(
            'Registered push subscription',
            extra={
                'endpoint': endpoint,
                'expiration': expiration.isoformat() if expiration else None,
            },
        )

    def hook_subscription(self, endpoint: str, document: int) -> bool:
        """Bind a subscription to a document.

        Returns:
            False if this binding was already added previously
        """
        with unit_of_work(self.session_maker, operation='hook_subscription') as session:
            stmt = (
                dialect_insert(session, DocumentSubscription)
                .values(endpoint=endpoint, document=document)
                .on_conflict_do_nothing(index_elements=['endpoint', 'document'])
            )
            hooked = session.execute(stmt).rowcount == 1
        if hooked:
            logger.info(
                'Hooked push subscription to document',
                extra={'endpoint': endpoint, 'document': document},
            )
        return hooked
