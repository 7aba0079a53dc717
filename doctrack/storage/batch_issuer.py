"""
Issuer for barcode batches.

Batch IDs are gap-filling: a new batch takes the smallest positive integer
not used by any live batch, so retiring old batches keeps IDs small.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.core.time_utils import utcnow
from doctrack.storage.batch import Barcode, Batch
from doctrack.storage.category import Category
from doctrack.storage.document import Document
from doctrack.storage.errors import SerializationFailureError
from doctrack.storage.records import IssuedBatch
from doctrack.storage.unit_of_work import is_unique_violation, unit_of_work

BATCH_SIZE = 10


def next_batch_id(session: Session) -> int:
    """Find the smallest positive integer not used as a batch ID."""
    if session.execute(select(Batch.id).where(Batch.id == 1)).first() is None:
        return 1
    successor = aliased(Batch)
    return session.execute(
        select(func.min(Batch.id + 1)).where(
            ~select(successor.id).where(successor.id == Batch.id + 1).exists()
        )
    ).scalar_one()


@dataclass
class BatchIssuer:
    session_maker: sessionmaker
    clock: Callable[[], datetime] = field(default=utcnow)
    code_factory: Callable[[], UUID] = field(default=uuid4)
    batch_size: int = BATCH_SIZE

    def generate_batch(self, office: int, generator: str) -> IssuedBatch:
        """Allocate a new batch of codes for an office.

        Args:
            office: Office that will use the codes
            generator: User ID of the staff member requesting the batch

        Returns:
            IssuedBatch: The allocated ID and its codes

        Raises:
            SerializationFailureError: If a concurrent allocation took the same
                ID; the caller should retry
            StoreUnavailableError: If the office or generator does not exist
        """
        codes: list[UUID] = []
        while len(codes) < self.batch_size:
            code = self.code_factory()
            if code not in codes:
                codes.append(code)

        with unit_of_work(
            self.session_maker, serializable=True, operation='generate_batch'
        ) as session:
            batch_id = next_batch_id(session)
            try:
                with session.begin_nested():
                    session.execute(
                        insert(Batch).values(
                            id=batch_id,
                            office=office,
                            generator=generator,
                            creation=self.clock(),
                        )
                    )
            except IntegrityError as e:
                # Foreign key and other violations are not retryable
                if not is_unique_violation(e):
                    raise
                raise SerializationFailureError(
                    f'Batch {batch_id} was allocated concurrently'
                ) from e
            session.execute(
                insert(Barcode),
                [{'code': code, 'batch': batch_id} for code in codes],
            )
            batch = IssuedBatch(id=batch_id, codes=codes)

        logger.info(
            'Generated barcode batch',
            extra={'batch': batch.id, 'office': office, 'generator': generator},
        )
        return batch

    def assign_barcode_to_document(self, code: UUID, category: int, title: str) -> bool:
        """Create a document that uses an issued code as its barcode.

        Returns:
            True on success. False if the code is already bound to a document
            (the existing binding is left untouched), was never issued, or the
            category does not accept new documents.
        """
        with unit_of_work(
            self.session_maker,
            serializable=True,
            operation='assign_barcode_to_document',
        ) as session:
            issued = session.execute(
                select(Barcode.code).where(Barcode.code == code)
            ).first()
            if issued is None:
                logger.info('Barcode was never issued', extra={'code': str(code)})
                return False

            active = session.execute(
                select(Category.id).where(
                    Category.id == category,
                    Category.state == Category.STATE_ACTIVE,
                )
            ).first()
            if active is None:
                logger.info(
                    'Category does not accept new documents',
                    extra={'category': category},
                )
                return False

            bound = session.execute(
                select(Document.id).where(Document.barcode == code)
            ).first()
            if bound is not None:
                logger.info(
                    'Barcode already bound',
                    extra={'code': str(code), 'document': bound.id},
                )
                return False

            try:
                with session.begin_nested():
                    document_id = session.execute(
                        insert(Document)
                        .values(category=category, title=title, barcode=code)
                        .returning(Document.id)
                    ).scalar_one()
            except IntegrityError as e:
                if not is_unique_violation(e):
                    raise
                logger.info('Barcode bound concurrently', extra={'code': str(code)})
                return False

        logger.info(
            'Assigned barcode to document',
            extra={'code': str(code), 'document': document_id, 'category': category},
        )
        return True

    def retire_batch(self, batch_id: int) -> bool:
        """Remove a batch and its codes, freeing its ID for reuse.

        Returns:
            False if the batch does not exist or any of its codes backs a
            document
        """
        with unit_of_work(
            self.session_maker, serializable=True, operation='retire_batch'
        ) as session:
            in_use = session.execute(
                select(Document.id)
                .join(Barcode, Barcode.code == Document.barcode)
                .where(Barcode.batch == batch_id)
                .limit(1)
            ).first()
            if in_use is not None:
                return False
            session.execute(delete(Barcode).where(Barcode.batch == batch_id))
            result = session.execute(delete(Batch).where(Batch.id == batch_id))
            retired = result.rowcount > 0

        if retired:
            logger.info('Retired barcode batch', extra={'batch': batch_id})
        return retired
