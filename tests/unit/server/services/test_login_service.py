"""Tests for LoginService."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from doctrack.server.services.login_service import (
    LoginResult,
    LoginService,
    get_login_service,
)
from doctrack.storage import database
from doctrack.storage.errors import SerializationFailureError, StoreUnavailableError
from doctrack.storage.records import NewUser, PendingSession
from doctrack.storage.session_store import SessionStore
from doctrack.storage.user_registrar import UserRegistrar

USER = NewUser(id='google-oauth2|42', name='Hello World', email='hello@up.edu.ph')
EXPIRATION = datetime(2026, 3, 3, 9, 0, 0)


@pytest.fixture
def mock_session_store():
    return MagicMock(spec=SessionStore)


@pytest.fixture
def mock_registrar():
    return MagicMock(spec=UserRegistrar)


@pytest.fixture
def service(mock_session_store, mock_registrar):
    return LoginService(session_store=mock_session_store, registrar=mock_registrar)


@pytest.fixture
def pending():
    return PendingSession(id=uuid4(), nonce=b'\x00' * 32, expiration=EXPIRATION)


class TestCompleteLogin:
    """Test cases for completing an OAuth callback."""

    def test_registers_then_upgrades(
        self, service, mock_session_store, mock_registrar, pending
    ):
        mock_registrar.insert_invited_user.return_value = [1, 2]
        mock_session_store.upgrade_session.return_value = pending

        result = service.complete_login(pending.id, USER, EXPIRATION, 'token')

        assert result == LoginResult(upgraded=True, offices=[1, 2])
        mock_registrar.insert_invited_user.assert_called_once_with(
            USER.id, USER.name, USER.email
        )
        mock_session_store.upgrade_session.assert_called_once_with(
            pending.id, USER.id, EXPIRATION, 'token'
        )

    def test_returning_user_has_no_new_offices(
        self, service, mock_session_store, mock_registrar, pending
    ):
        mock_registrar.insert_invited_user.return_value = None
        mock_session_store.upgrade_session.return_value = pending

        result = service.complete_login(pending.id, USER, EXPIRATION, 'token')

        assert result == LoginResult(upgraded=True, offices=None)

    def test_retries_serialization_failures(
        self, service, mock_session_store, mock_registrar, pending
    ):
        mock_registrar.insert_invited_user.side_effect = [
            SerializationFailureError(),
            [3],
        ]
        mock_session_store.upgrade_session.side_effect = [
            SerializationFailureError(),
            SerializationFailureError(),
            pending,
        ]

        result = service.complete_login(pending.id, USER, EXPIRATION, 'token')

        assert result == LoginResult(upgraded=True, offices=[3])
        assert mock_registrar.insert_invited_user.call_count == 2
        assert mock_session_store.upgrade_session.call_count == 3

    def test_store_unavailable_is_not_retried(
        self, service, mock_session_store, mock_registrar
    ):
        mock_registrar.insert_invited_user.side_effect = StoreUnavailableError()

        with pytest.raises(StoreUnavailableError):
            service.complete_login(uuid4(), USER, EXPIRATION, 'token')

        mock_registrar.insert_invited_user.assert_called_once()
        mock_session_store.upgrade_session.assert_not_called()

    def test_missing_pending_session_is_reported(
        self, service, mock_session_store, mock_registrar
    ):
        mock_registrar.insert_invited_user.return_value = []
        mock_session_store.upgrade_session.return_value = None

        result = service.complete_login(uuid4(), USER, EXPIRATION, 'token')

        assert result.upgraded is False


class TestLoginFlow:
    """End-to-end flow against a real database."""

    def test_invited_user_logs_in_and_out(
        self, session_store, registrar, invitation_store, office, clock
    ):
        service = LoginService(session_store=session_store, registrar=registrar)
        invitation_store.upsert_invitation(office, USER.email, 2)

        pending = service.begin_login()
        result = service.complete_login(
            pending.id, USER, clock.now + timedelta(hours=8), 'token'
        )

        assert result == LoginResult(upgraded=True, offices=[office])
        assert session_store.get_permissions_from_session(pending.id, office) == 2

        invalidated = service.logout(pending.id)

        assert invalidated.kind == 'session'
        assert session_store.check_valid_session(pending.id) is False


def test_get_login_service_uses_process_wide_provider():
    service = get_login_service()

    assert service.session_store.session_maker is database.session_maker
    assert service.registrar.session_maker is database.session_maker
