"""Service for the login and logout flow."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.database import session_maker
from doctrack.storage.records import InvalidatedSession, NewUser, PendingSession
from doctrack.storage.retry import SERIALIZATION_RETRY_ATTEMPTS, call_with_retry
from doctrack.storage.session_store import SessionStore
from doctrack.storage.user_registrar import UserRegistrar


class LoginResult(BaseModel):
    """Outcome of a completed OAuth callback."""

    upgraded: bool
    offices: list[int] | None = None


@dataclass
class LoginService:
    """Drives the stores through a login.

    The token exchange with the identity provider happens before
    ``complete_login`` is called, so no transaction is ever open while waiting
    on the network. Each serializable store call is retried on its own.
    """

    session_store: SessionStore
    registrar: UserRegistrar
    retry_attempts: int = field(default=SERIALIZATION_RETRY_ATTEMPTS)

    def _retrying(self, func, *args):
        return call_with_retry(func, *args, attempts=self.retry_attempts)

    def begin_login(self) -> PendingSession:
        return self.session_store.generate_pending_session()

    def complete_login(
        self,
        session_id: UUID,
        user: NewUser,
        expiration: datetime,
        access_token: str,
    ) -> LoginResult:
        """Register the user and upgrade their pending session.

        Args:
            session_id: ID of the pending session started by ``begin_login``
            user: Identity returned by the provider
            expiration: When the upgraded session lapses
            access_token: Provider access token to keep with the session

        Returns:
            LoginResult: Whether the pending session was upgraded, and the
            offices a newly registered user joined (None for returning users)
        """
        offices = self._retrying(
            self.registrar.insert_invited_user, user.id, user.name, user.email
        )
        consumed = self._retrying(
            self.session_store.upgrade_session,
            session_id,
            user.id,
            expiration,
            access_token,
        )
        if consumed is None:
            logger.warning(
                'Login completed without a pending session',
                extra={'session_id': str(session_id), 'user_id': user.id},
            )
        return LoginResult(upgraded=consumed is not None, offices=offices)

    def logout(self, session_id: UUID) -> InvalidatedSession | None:
        return self._retrying(self.session_store.invalidate_session, session_id)


def get_login_service() -> LoginService:
    """Build a LoginService whose stores share the process-wide session provider."""
    return LoginService(
        session_store=SessionStore(session_maker),
        registrar=UserRegistrar(session_maker),
    )
