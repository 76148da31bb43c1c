"""
tests/test_status.py -- Tests for the database status probe.

Covers:
  - get_status() on SQLite reports version, pool capacity and checked-out
    connections, stamped with the supplied time
  - The raw status always carries the version; filtering decides who sees it
"""

from __future__ import annotations

from datetime import datetime, timezone

from auth.authorization import filter_output
from auth.features import Feature
from auth.models import AnonymousUser
from core.database import get_status, to_iso


class TestGetStatus:
    def test_sqlite_status_shape(self, engine) -> None:
        now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        status = get_status(engine, now=now)
        assert status["updated_at"] == to_iso(now)
        database = status["dependencies"]["database"]
        assert database["version"].count(".") == 2
        assert isinstance(database["max_connections"], int)
        assert database["max_connections"] >= 1
        assert isinstance(database["opened_connections"], int)

    def test_filtered_status_for_anonymous(self, engine) -> None:
        filtered = filter_output(AnonymousUser(), Feature.READ_STATUS, get_status(engine))
        assert "version" not in filtered["dependencies"]["database"]
        assert set(filtered["dependencies"]["database"]) == {"max_connections", "opened_connections"}


class TestTimestamps:
    def test_iso_is_fixed_width(self) -> None:
        whole = to_iso(datetime(2025, 1, 1, tzinfo=timezone.utc))
        fractional = to_iso(datetime(2025, 1, 1, 0, 0, 0, 123, tzinfo=timezone.utc))
        assert len(whole) == len(fractional)
        assert whole < fractional
