"""Tests for UserRegistrar."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from doctrack.storage.errors import InvariantViolationError
from doctrack.storage.invitation import Invitation
from doctrack.storage.staff import Staff
from doctrack.storage.user import User
from doctrack.storage.user_registrar import UserRegistrar

USER_ID = 'google-oauth2|1234567890'
EMAIL = 'hello@up.edu.ph'


def _staff_rows(session_maker, user_id):
    with session_maker() as session:
        rows = session.execute(
            select(Staff.office, Staff.permission).where(Staff.user_id == user_id)
        ).all()
        return {office: permission for office, permission in rows}


@pytest.fixture
def offices(office_store):
    return [office_store.create_office(f'Office {i}') for i in range(3)]


class TestInsertInvitedUser:
    """Test cases for onboarding a user."""

    def test_consumes_all_invitations(
        self, registrar, invitation_store, offices, session_maker
    ):
        for permission, office in enumerate(offices, start=1):
            invitation_store.upsert_invitation(office, EMAIL, permission)

        result = registrar.insert_invited_user(USER_ID, 'Hello World', EMAIL)

        assert sorted(result) == sorted(offices)
        assert _staff_rows(session_maker, USER_ID) == {
            office: permission for permission, office in enumerate(offices, start=1)
        }
        with session_maker() as session:
            remaining = session.execute(
                select(Invitation).where(Invitation.email == EMAIL)
            ).all()
        assert remaining == []

    def test_invitation_email_matches_case_insensitively(
        self, registrar, invitation_store, offices
    ):
        invitation_store.upsert_invitation(offices[0], EMAIL, 1)

        assert registrar.insert_invited_user(USER_ID, 'Hello', 'Hello@UP.edu.ph') == [
            offices[0]
        ]

    def test_other_emails_keep_their_invitations(
        self, registrar, invitation_store, offices
    ):
        invitation_store.upsert_invitation(offices[0], EMAIL, 1)
        invitation_store.upsert_invitation(offices[0], 'other@up.edu.ph', 2)

        registrar.insert_invited_user(USER_ID, 'Hello World', EMAIL)

        assert [email for email, _ in invitation_store.get_invitations(offices[0])] == [
            'other@up.edu.ph'
        ]

    def test_user_without_invitations_joins_nothing(self, registrar, session_maker):
        assert registrar.insert_invited_user(USER_ID, 'Hello World', EMAIL) == []
        assert _staff_rows(session_maker, USER_ID) == {}

    def test_existing_user_is_updated_only(
        self, registrar, invitation_store, offices, session_maker
    ):
        invitation_store.upsert_invitation(offices[0], EMAIL, 1)
        registrar.insert_invited_user(USER_ID, 'Hello World', EMAIL)
        staff_before = _staff_rows(session_maker, USER_ID)

        result = registrar.insert_invited_user(USER_ID, 'Renamed', EMAIL)

        assert result is None
        assert _staff_rows(session_maker, USER_ID) == staff_before
        with session_maker() as session:
            assert session.get(User, USER_ID).name == 'Renamed'

    def test_email_change_clears_invitations_to_new_email(
        self, registrar, invitation_store, offices, session_maker
    ):
        registrar.insert_invited_user(USER_ID, 'Hello World', EMAIL)
        invitation_store.upsert_invitation(offices[1], 'new@up.edu.ph', 3)

        result = registrar.insert_invited_user(USER_ID, 'Hello World', 'New@up.edu.ph')

        assert result is None
        assert _staff_rows(session_maker, USER_ID) == {}
        with session_maker() as session:
            assert session.get(User, USER_ID).email == 'new@up.edu.ph'
            remaining = session.execute(
                select(Invitation).where(Invitation.email == 'new@up.edu.ph')
            ).all()
        assert remaining == []

    def test_raises_when_update_matches_several_users(self):
        session = MagicMock()
        session.execute.return_value.rowcount = 2
        session_maker = MagicMock(return_value=session)

        with pytest.raises(InvariantViolationError):
            UserRegistrar(session_maker=session_maker).insert_invited_user(
                USER_ID, 'Hello World', EMAIL
            )


class TestConcurrentRegistration:
    """Registrations race through the store's serializable transactions."""

    def _race(self, calls):
        barrier = threading.Barrier(len(calls))

        def run(call):
            barrier.wait()
            return call()

        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            return list(executor.map(run, calls))

    def test_different_users_both_succeed(
        self, registrar, invitation_store, offices, session_maker
    ):
        invitation_store.upsert_invitation(offices[0], 'a@up.edu.ph', 1)
        invitation_store.upsert_invitation(offices[1], 'b@up.edu.ph', 2)

        results = self._race(
            [
                lambda: registrar.insert_invited_user('user-a', 'A', 'a@up.edu.ph'),
                lambda: registrar.insert_invited_user('user-b', 'B', 'b@up.edu.ph'),
            ]
        )

        assert results == [[offices[0]], [offices[1]]]
        assert _staff_rows(session_maker, 'user-a') == {offices[0]: 1}
        assert _staff_rows(session_maker, 'user-b') == {offices[1]: 2}

    def test_same_user_succeeds_exactly_once(
        self, registrar, invitation_store, offices, session_maker
    ):
        invitation_store.upsert_invitation(offices[0], EMAIL, 1)

        results = self._race(
            [
                lambda: registrar.insert_invited_user(USER_ID, 'Hello', EMAIL),
                lambda: registrar.insert_invited_user(USER_ID, 'Hello', EMAIL),
            ]
        )

        assert sorted(results, key=lambda r: r is None) == [[offices[0]], None]
        assert _staff_rows(session_maker, USER_ID) == {offices[0]: 1}
