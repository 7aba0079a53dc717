"""
Store class for pending and authenticated sessions.
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import delete, insert, literal, select
from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.core.time_utils import utcnow
from doctrack.storage.auth_session import AuthSession
from doctrack.storage.errors import InvariantViolationError
from doctrack.storage.pending import Pending
from doctrack.storage.records import (
    InvalidatedSession,
    PendingSession,
    SessionRecord,
    UserInfo,
    parse_row,
)
from doctrack.storage.staff import Staff
from doctrack.storage.unit_of_work import unit_of_work
from doctrack.storage.user import User

# Pending session configuration
NONCE_BYTES = 32  # 64 hex characters
PENDING_SESSION_TTL = timedelta(minutes=10)

_PENDING_COLUMNS = (Pending.id, Pending.nonce, Pending.expiration)
_SESSION_COLUMNS = (
    AuthSession.id,
    AuthSession.user_id,
    AuthSession.expiration,
    AuthSession.access_token,
)


def generate_nonce() -> bytes:
    return secrets.token_bytes(NONCE_BYTES)


@dataclass
class SessionStore:
    """Store for the pending session to session lifecycle.

    Session rows are only valid while their ``expiration`` lies in the future;
    every read that resolves a session applies that check itself.
    """

    session_maker: sessionmaker
    clock: Callable[[], datetime] = field(default=utcnow)
    id_factory: Callable[[], UUID] = field(default=uuid4)
    nonce_factory: Callable[[], bytes] = field(default=generate_nonce)
    pending_ttl: timedelta = PENDING_SESSION_TTL

    def generate_pending_session(self) -> PendingSession:
        """Start a new OAuth handshake.

        Returns:
            PendingSession: The server-issued id, nonce and expiration

        Raises:
            StoreUnavailableError: If no connection could be acquired
        """
        values = {
            'id': self.id_factory(),
            'nonce': self.nonce_factory(),
            'expiration': self.clock() + self.pending_ttl,
        }
        with unit_of_work(
            self.session_maker, operation='generate_pending_session'
        ) as session:
            row = (
                session.execute(
                    insert(Pending).values(**values).returning(*_PENDING_COLUMNS)
                )
                .mappings()
                .one()
            )
            pending = parse_row(PendingSession, row)

        logger.info(
            'Generated pending session',
            extra={
                'session_id': str(pending.id),
                'expiration': pending.expiration.isoformat(),
            },
        )
        return pending

    def get_pending_session_nonce(self, session_id: UUID) -> bytes:
        """Get the nonce of a pending session.

        Returns:
            The nonce, or an empty byte string if no such pending session exists
        """
        with unit_of_work(
            self.session_maker, operation='get_pending_session_nonce'
        ) as session:
            row = (
                session.execute(
                    select(*_PENDING_COLUMNS).where(Pending.id == session_id).limit(1)
                )
                .mappings()
                .first()
            )
            if row is None:
                return b''
            return parse_row(PendingSession, row).nonce

    def check_valid_session(self, session_id: UUID) -> bool:
        """Check whether the id maps to an unexpired session that went through OAuth."""
        with unit_of_work(self.session_maker, operation='check_valid_session') as session:
            row = session.execute(
                select(literal(1)).where(
                    AuthSession.id == session_id,
                    AuthSession.expiration > self.clock(),
                )
            ).first()
            return row is not None

    def upgrade_session(
        self,
        session_id: UUID,
        user_id: str,
        expiration: datetime,
        access_token: str,
    ) -> PendingSession | None:
        """Upgrade a pending session into a valid session.

        The pending row is deleted and the session row inserted in one
        serializable transaction, so the id never exists in both tables.

        Returns:
            The consumed pending session, or None if no pending session with
            this id existed (nothing is written in that case)

        Raises:
            SerializationFailureError: If a concurrent transaction conflicted;
                the caller should retry
        """
        with unit_of_work(
            self.session_maker, serializable=True, operation='upgrade_session'
        ) as session:
            consumed = (
                session.execute(
                    delete(Pending)
                    .where(Pending.id == session_id)
                    .returning(*_PENDING_COLUMNS)
                )
                .mappings()
                .all()
            )
            if not consumed:
                logger.info(
                    'No pending session to upgrade',
                    extra={'session_id': str(session_id)},
                )
                return None
            if len(consumed) != 1:
                raise InvariantViolationError(
                    f'Deleted {len(consumed)} pending sessions for one id'
                )
            pending = parse_row(PendingSession, consumed[0])

            session.execute(
                insert(AuthSession).values(
                    id=session_id,
                    user_id=user_id,
                    expiration=expiration,
                    access_token=access_token,
                )
            )

        logger.info(
            'Upgraded pending session',
            extra={
                'session_id': str(session_id),
                'user_id': user_id,
                'expiration': expiration.isoformat(),
            },
        )
        return pending

    def get_user_from_session(self, session_id: UUID) -> UserInfo | None:
        """Return the name and email of the user behind a valid session."""
        with unit_of_work(
            self.session_maker, operation='get_user_from_session'
        ) as session:
            row = (
                session.execute(
                    select(User.name, User.email)
                    .join(AuthSession, AuthSession.user_id == User.id)
                    .where(
                        AuthSession.id == session_id,
                        AuthSession.expiration > self.clock(),
                    )
                    .limit(1)
                )
                .mappings()
                .first()
            )
            return None if row is None else parse_row(UserInfo, row)

    def get_permissions_from_session(
        self, session_id: UUID, office: int
    ) -> int | None:
        """Return the permission bits the session's user holds in an office.

        Returns:
            The permission, or None if the session is invalid or the user is
            not a member of the office
        """
        with unit_of_work(
            self.session_maker, operation='get_permissions_from_session'
        ) as session:
            return session.execute(
                select(Staff.permission)
                .join(AuthSession, AuthSession.user_id == Staff.user_id)
                .where(
                    AuthSession.id == session_id,
                    AuthSession.expiration > self.clock(),
                    Staff.office == office,
                )
                .limit(1)
            ).scalar_one_or_none()

    def invalidate_session(self, session_id: UUID) -> InvalidatedSession | None:
        """Delete whichever pending or full session matches the id.

        Both tables are checked in one serializable transaction so an upgrade
        cannot slip in between the two checks.

        Returns:
            The removed row tagged with its kind, or None if neither existed
        """
        with unit_of_work(
            self.session_maker, serializable=True, operation='invalidate_session'
        ) as session:
            row = (
                session.execute(
                    delete(Pending)
                    .where(Pending.id == session_id)
                    .returning(*_PENDING_COLUMNS)
                )
                .mappings()
                .first()
            )
            if row is not None:
                invalidated = InvalidatedSession(
                    kind='pending', data=parse_row(PendingSession, row)
                )
            else:
                row = (
                    session.execute(
                        delete(AuthSession)
                        .where(AuthSession.id == session_id)
                        .returning(*_SESSION_COLUMNS)
                    )
                    .mappings()
                    .first()
                )
                if row is None:
                    return None
                invalidated = InvalidatedSession(
                    kind='session', data=parse_row(SessionRecord, row)
                )

        logger.info(
            'Invalidated session',
            extra={'session_id': str(session_id), 'kind': invalidated.kind},
        )
        return invalidated
