"""Tests for row parsing at the store boundary."""

from datetime import datetime
from uuid import uuid4

import pytest

from doctrack.storage.errors import MalformedRowError
from doctrack.storage.records import (
    InvitationRecord,
    PendingSession,
    parse_row,
    parse_rows,
)


class TestParseRow:
    def test_parses_mapping(self):
        row = {'permission': 3, 'creation': datetime(2026, 1, 1)}

        assert parse_row(InvitationRecord, row) == InvitationRecord(
            permission=3, creation=datetime(2026, 1, 1)
        )

    def test_missing_row_is_malformed(self):
        with pytest.raises(MalformedRowError):
            parse_row(InvitationRecord, None)

    def test_missing_column_is_malformed(self):
        with pytest.raises(MalformedRowError):
            parse_row(InvitationRecord, {'permission': 3})

    def test_oversized_nonce_is_malformed(self):
        row = {'id': uuid4(), 'nonce': b'\x00' * 66, 'expiration': datetime(2026, 1, 1)}

        with pytest.raises(MalformedRowError):
            parse_row(PendingSession, row)

    def test_parse_rows_keeps_order(self):
        rows = [
            {'permission': 1, 'creation': datetime(2026, 1, 1)},
            {'permission': 2, 'creation': datetime(2026, 1, 2)},
        ]

        assert [r.permission for r in parse_rows(InvitationRecord, rows)] == [1, 2]
