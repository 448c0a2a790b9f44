"""Tests for migrations/env_helpers.py DSN-to-URL conversion."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from migrations.env_helpers import get_database_url, libpq_dsn_to_url, parse_libpq_dsn


class TestParseLibpqDsn:
    def test_bare_values(self):
        assert parse_libpq_dsn("dbname=db user=u host=h") == {
            "dbname": "db",
            "user": "u",
            "host": "h",
        }

    def test_quoted_value_with_spaces(self):
        assert parse_libpq_dsn("password='p w' host=h")["password"] == "p w"

    def test_escaped_quote(self):
        assert parse_libpq_dsn(r"password='it\'s' host=h")["password"] == "it's"


class TestLibpqDsnToUrl:
    def test_unix_socket(self):
        dsn = "dbname=staybook user=sa password=s3cret host=/cloudsql/proj:us-central1:inst"
        assert libpq_dsn_to_url(dsn) == (
            "postgresql+psycopg2://sa:s3cret@/staybook"
            "?host=%2Fcloudsql%2Fproj%3Aus-central1%3Ainst"
        )

    def test_tcp_host_default_port(self):
        dsn = "dbname=db user=u password=p host=myhost"
        assert libpq_dsn_to_url(dsn) == "postgresql+psycopg2://u:p@myhost:5432/db"

    def test_special_chars_encoded(self):
        dsn = "dbname=db user=u@domain password=p@ss=word host=h port=5433"
        result = libpq_dsn_to_url(dsn)
        assert "u%40domain" in result
        assert "p%40ss%3Dword" in result
        assert result.endswith("@h:5433/db")

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        assert "from-env" in libpq_dsn_to_url("dbname=db user=u host=h")

    def test_dsn_password_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = libpq_dsn_to_url("dbname=db user=u password=from-dsn host=h")
        assert "from-dsn" in result
        assert "from-env" not in result


class TestGetDatabaseUrl:
    def test_driver_url_passthrough(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}, clear=True):
            assert get_database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_postgres_scheme_normalized(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgres://u:p@h:5432/db"}, clear=True):
            assert get_database_url() == "postgresql+psycopg2://u:p@h:5432/db"

    def test_password_injected_into_url(self):
        env = {"DATABASE_URL": "postgresql://u@h/db", "DB_PASSWORD": "s3cret"}
        with patch.dict(os.environ, env, clear=True):
            assert get_database_url() == "postgresql+psycopg2://u:s3cret@h/db"

    def test_dsn_converted(self):
        with patch.dict(os.environ, {"DATABASE_URL": "dbname=db user=u password=p host=h"}, clear=True):
            assert get_database_url().startswith("postgresql+psycopg2://")

    def test_missing_url_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_database_url()


class TestBookingsSchemaSql:
    """The schema carries the storage-level double-booking guards."""

    SQL = (Path(__file__).resolve().parents[1] / "migrations" / "sql" / "001_bookings.sql").read_text()

    def test_unit_overlap_exclusion(self):
        assert "CONSTRAINT bookings_no_unit_overlap EXCLUDE USING gist" in self.SQL
        assert "'[)'" in self.SQL

    def test_guest_unit_unique(self):
        assert "CONSTRAINT bookings_guest_unit_unique UNIQUE (guest_name, unit_id)" in self.SQL

    def test_constraint_names_match_store(self):
        from staybook.infra.store import (
            GUEST_OVERLAP_CONSTRAINT,
            GUEST_UNIT_UNIQUE_CONSTRAINT,
            UNIT_OVERLAP_CONSTRAINT,
        )

        for name in (UNIT_OVERLAP_CONSTRAINT, GUEST_OVERLAP_CONSTRAINT, GUEST_UNIT_UNIQUE_CONSTRAINT):
            assert name in self.SQL
