"""
Registrar that onboards newly authenticated users.
"""

from dataclasses import dataclass

from sqlalchemy import delete, insert, update
from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.errors import InvariantViolationError
from doctrack.storage.invitation import Invitation
from doctrack.storage.invitation_store import normalize_email
from doctrack.storage.staff import Staff
from doctrack.storage.unit_of_work import unit_of_work
from doctrack.storage.user import User


@dataclass
class UserRegistrar:
    """Turns pending invitations into staff memberships on first login."""

    session_maker: sessionmaker

    def insert_invited_user(self, user_id: str, name: str, email: str) -> list[int] | None:
        """Register a user, or refresh the details of an existing one.

        Runs as one serializable transaction:

        1. Update the user row matching ``user_id``. If one was updated, the
           user already exists: invitations addressed to its (possibly new)
           email are cleared, never turned into memberships.
        2. Otherwise delete every invitation addressed to ``email``, keeping
           their (office, permission) pairs.
        3. Insert the user.
        4. Insert one staff row per consumed invitation.

        Invitations are deleted before any staff row is written, so two racing
        registrations can never both consume them.

        Args:
            user_id: Identity provider subject
            name: Display name
            email: Email address reported by the identity provider

        Returns:
            The office IDs the new user joined, or None if the user already
            existed

        Raises:
            SerializationFailureError: If a concurrent registration conflicted;
                the caller should retry
            InvariantViolationError: If more than one user matched the id
        """
        email = normalize_email(email)
        with unit_of_work(
            self.session_maker, serializable=True, operation='insert_invited_user'
        ) as session:
            result = session.execute(
                update(User).where(User.id == user_id).values(name=name, email=email)
            )
            if result.rowcount not in (0, 1):
                raise InvariantViolationError(
                    f'Updated {result.rowcount} users for one id'
                )
            if result.rowcount == 1:
                # A registered email cannot hold invitations
                cleared = session.execute(
                    delete(Invitation).where(Invitation.email == email)
                ).rowcount
                logger.info(
                    'Updated existing user',
                    extra={'user_id': user_id, 'cleared_invitations': cleared},
                )
                return None

            invites = session.execute(
                delete(Invitation)
                .where(Invitation.email == email)
                .returning(Invitation.office, Invitation.permission)
            ).all()

            session.execute(insert(User).values(id=user_id, name=name, email=email))
            if invites:
                session.execute(
                    insert(Staff),
                    [
                        {'user_id': user_id, 'office': office, 'permission': permission}
                        for office, permission in invites
                    ],
                )
            offices = [office for office, _ in invites]

        logger.info(
            'Registered invited user',
            extra={'user_id': user_id, 'email': email, 'offices': offices},
        )
        return offices
