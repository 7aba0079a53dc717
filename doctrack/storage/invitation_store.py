"""
Store class for managing office invitations.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.core.time_utils import utcnow
from doctrack.storage.database import dialect_insert
from doctrack.storage.invitation import Invitation
from doctrack.storage.records import InvitationRecord, parse_row, parse_rows
from doctrack.storage.unit_of_work import unit_of_work
from doctrack.storage.user import User


def normalize_email(email: str) -> str:
    return email.lower().strip()


@dataclass
class InvitationStore:
    """Store for invitations keyed by (office, email)."""

    session_maker: sessionmaker
    clock: Callable[[], datetime] = field(default=utcnow)

    def upsert_invitation(
        self, office: int, email: str, permission: int
    ) -> datetime | None:
        """Invite an email to an office, or refresh an existing invitation.

        On conflict the permission is overwritten and ``creation`` is reset to
        now.

        Args:
            office: Office ID
            email: Invitee's email address
            permission: Permission bits granted on registration

        Returns:
            The (possibly refreshed) creation timestamp, or None if a
            registered user already owns this email
        """
        email = normalize_email(email)
        now = self.clock()
        with unit_of_work(
            self.session_maker, serializable=True, operation='upsert_invitation'
        ) as session:
            registered = session.execute(
                select(User.id).where(User.email == email).limit(1)
            ).first()
            if registered is not None:
                logger.info(
                    'Skipped invitation for registered user',
                    extra={'office': office, 'email': email},
                )
                return None

            stmt = dialect_insert(session, Invitation).values(
                office=office, email=email, permission=permission, creation=now
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=['office', 'email'],
                set_={'permission': permission, 'creation': now},
            ).returning(Invitation.creation)
            creation = session.execute(stmt).scalar_one()

        logger.info(
            'Upserted office invitation',
            extra={
                'office': office,
                'email': email,
                'permission': permission,
                'creation': creation.isoformat(),
            },
        )
        return creation

    def revoke_invitation(self, office: int, email: str) -> InvitationRecord | None:
        """Delete an invitation and return what it granted.

        Returns:
            The revoked permission and creation, or None if no invitation
            exists for this exact (office, email) pair
        """
        email = normalize_email(email)
        with unit_of_work(self.session_maker, operation='revoke_invitation') as session:
            row = (
                session.execute(
                    delete(Invitation)
                    .where(Invitation.office == office, Invitation.email == email)
                    .returning(Invitation.permission, Invitation.creation)
                )
                .mappings()
                .first()
            )
            if row is None:
                return None
            revoked = parse_row(InvitationRecord, row)

        logger.info(
            'Revoked office invitation',
            extra={'office': office, 'email': email},
        )
        return revoked

    def get_invitations(self, office: int) -> list[tuple[str, InvitationRecord]]:
        """List the pending invitations of an office, oldest first.

        Returns:
            (email, invitation) pairs
        """
        with unit_of_work(self.session_maker, operation='get_invitations') as session:
            rows = (
                session.execute(
                    select(Invitation.email, Invitation.permission, Invitation.creation)
                    .where(Invitation.office == office)
                    .order_by(Invitation.creation, Invitation.email)
                )
                .mappings()
                .all()
            )
            records = parse_rows(InvitationRecord, rows)
            return [(row['email'], record) for row, record in zip(rows, records)]
