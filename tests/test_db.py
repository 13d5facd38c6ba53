"""
Tests for the Supabase layer, auth and settings that run without a database.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import datetime
from types import SimpleNamespace


class FakeChildRepository:
    """Stands in for ChildRepository.get_by_parent."""

    def __init__(self, rows):
        self.rows = rows
        self.error = None

    def get_by_parent(self, parent_id):
        if self.error:
            raise self.error
        return [r for r in self.rows if r["parent_id"] == parent_id]


class FakeQuery:
    """Records a PostgREST query chain and returns canned rows."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args))
            return self
        return record

    def execute(self):
        return SimpleNamespace(data=self.rows)


class FakeSupabase:
    """Stands in for the supabase-py client."""

    def __init__(self, rows=()):
        self.query = FakeQuery(list(rows))
        self.tables = []
        self.auth = SimpleNamespace(get_user=lambda token: SimpleNamespace(user={"token": token}))

    def table(self, name):
        self.tables.append(name)
        return self.query


def _row(child_id, created_at):
    return {
        "id": child_id,
        "parent_id": "p1",
        "name": f"Child {child_id}",
        "date_of_birth": "2021-03-04",
        "gender": "male",
        "created_at": created_at,
    }


class TestErrorTranslation:
    """Test PostgREST error mapping."""

    @pytest.mark.parametrize("code,expected", [
        ("42501", "permission-denied"),
        ("PGRST301", "unauthenticated"),
        ("PGRST116", "not-found"),
        ("23505", "invalid-argument"),
        ("22P02", "invalid-argument"),
        ("XX000", "unknown"),
    ])
    def test_codes(self, code, expected):
        from postgrest.exceptions import APIError
        from src.db.repositories import translate_error

        error = translate_error(APIError({"code": code, "message": "boom"}))
        assert error.code == expected
        assert error.detail == "boom"

    def test_engine_errors_pass_through(self):
        from src.db.repositories import translate_error
        from src.errors import NotFound

        error = NotFound("gone")
        assert translate_error(error) is error

    def test_decorator(self):
        from postgrest.exceptions import APIError
        from src.db.repositories import translated
        from src.errors import PermissionDenied

        @translated
        def insert():
            raise APIError({"code": "42501", "message": "row-level security"})

        with pytest.raises(PermissionDenied):
            insert()

    def test_errors_by_code(self):
        from src.errors import ERRORS_BY_CODE, ValidationError

        assert ERRORS_BY_CODE["validation-error"] is ValidationError
        assert ValidationError("Bad date").user_message == "Bad date"


class TestSupabaseClient:
    """Test the client wrapper surface."""

    def test_delegates_table_and_user(self):
        from src.db.client import SupabaseClient

        raw = FakeSupabase()
        client = SupabaseClient(raw)

        assert client.table("children") is raw.query
        assert raw.tables == ["children"]
        assert client.get_user("abc").user == {"token": "abc"}

    def test_no_raw_client_accessors(self):
        from src.db.client import SupabaseClient

        client = SupabaseClient(FakeSupabase())
        assert not hasattr(client, "client")
        assert not hasattr(client, "auth")


class TestTimelineEventRepository:
    """Test timeline event writes against a recorded query chain."""

    def _repository(self, rows=()):
        from src.db.client import SupabaseClient
        from src.db.repositories import TimelineEventRepository

        raw = FakeSupabase(rows)
        return TimelineEventRepository(client=SupabaseClient(raw)), raw

    def test_create_stamps_owner_and_times(self):
        from src.models import TimelineEventDraft

        repository, raw = self._repository([{"id": "e1"}])
        draft = TimelineEventDraft(type="illness", title="Fever", date=datetime(2024, 1, 1, 14))

        assert repository.create("c1", "p1", draft) == {"id": "e1"}
        assert raw.tables == ["health_timeline"]

        name, (row,) = raw.query.calls[0]
        assert name == "insert"
        assert row["child_id"] == "c1"
        assert row["parent_id"] == "p1"
        assert row["title"] == "Fever"
        assert row["date"] == "2024-01-01T14:00:00"
        assert row["created_at"] == row["updated_at"]
        assert "id" not in row

    def test_update_stamps_updated_at(self):
        repository, raw = self._repository([{"id": "e1", "is_resolved": True}])
        repository.update("e1", {"is_resolved": True})

        name, (row,) = raw.query.calls[0]
        assert name == "update"
        assert row["is_resolved"] is True
        assert "updated_at" in row
        assert ("eq", ("id", "e1")) in raw.query.calls

    def test_delete_reports_missing_row(self):
        repository, _ = self._repository([])
        assert repository.delete("e1") is False

    def test_errors_translated(self):
        from postgrest.exceptions import APIError
        from src.errors import PermissionDenied

        repository, raw = self._repository()

        def refuse():
            raise APIError({"code": "42501", "message": "row-level security"})

        raw.query.execute = refuse
        with pytest.raises(PermissionDenied):
            repository.get_by_id("e1")


class TestPollingSubscription:
    """Test the roster poller without its thread."""

    def _subscription(self, repository):
        from src.db.stores import PollingSubscription

        snapshots, errors = [], []
        subscription = PollingSubscription(
            repository, "p1", snapshots.append, errors.append, interval=60,
        )
        return subscription, snapshots, errors

    def test_delivers_sorted_snapshot(self):
        repository = FakeChildRepository([
            _row("a", "2024-01-01T00:00:00"),
            _row("b", "2024-02-01T00:00:00"),
        ])
        subscription, snapshots, errors = self._subscription(repository)
        subscription.poll_once()

        assert [c.id for c in snapshots[0]] == ["b", "a"]
        assert errors == []

    def test_unchanged_roster_not_redelivered(self):
        repository = FakeChildRepository([_row("a", "2024-01-01T00:00:00")])
        subscription, snapshots, _ = self._subscription(repository)
        subscription.poll_once()
        subscription.poll_once()

        assert len(snapshots) == 1

        repository.rows.append(_row("b", "2024-02-01T00:00:00"))
        subscription.poll_once()
        assert len(snapshots) == 2

    def test_errors_reported(self):
        from src.errors import PermissionDenied, Unknown

        repository = FakeChildRepository([])
        subscription, _, errors = self._subscription(repository)

        repository.error = PermissionDenied("denied")
        subscription.poll_once()
        repository.error = RuntimeError("socket closed")
        subscription.poll_once()

        assert isinstance(errors[0], PermissionDenied)
        assert isinstance(errors[1], Unknown)

    def test_nothing_delivered_after_cancel(self):
        repository = FakeChildRepository([_row("a", "2024-01-01T00:00:00")])
        subscription, snapshots, _ = self._subscription(repository)
        subscription.cancel()
        subscription.poll_once()

        assert snapshots == []
        assert not subscription.active


class TestTokenDecoding:
    """Test local JWT verification."""

    @pytest.fixture(autouse=True)
    def jwt_secret(self, monkeypatch):
        from src.db.client import reset_clients

        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("SUPABASE_JWT_SECRET", "test-secret")
        reset_clients()
        yield
        reset_clients()

    def _token(self, secret="test-secret", **claims):
        from jose import jwt

        payload = {
            "sub": "user-1",
            "email": "parent@example.com",
            "aud": "authenticated",
            "exp": int(datetime.now().timestamp()) + 3600,
            "user_metadata": {"role": "parent"},
        }
        payload.update(claims)
        return jwt.encode(payload, secret, algorithm="HS256")

    def test_valid_token(self):
        from src.auth.middleware import decode_token

        claims = decode_token(self._token())
        assert claims == {"sub": "user-1", "email": "parent@example.com", "role": "parent"}

    def test_wrong_secret(self):
        from fastapi import HTTPException
        from src.auth.middleware import decode_token

        with pytest.raises(HTTPException) as exc:
            decode_token(self._token(secret="other"))
        assert exc.value.status_code == 401

    def test_wrong_audience(self):
        from fastapi import HTTPException
        from src.auth.middleware import decode_token

        with pytest.raises(HTTPException):
            decode_token(self._token(aud="anon"))

    def test_role_defaults_to_parent(self):
        from src.auth.middleware import _to_user, decode_token

        user = _to_user(decode_token(self._token(user_metadata={})))
        assert user.is_parent


class TestSettings:
    """Test environment settings."""

    @pytest.fixture(autouse=True)
    def fresh(self):
        from src.config import reset_settings

        reset_settings()
        yield
        reset_settings()

    def test_defaults(self, monkeypatch):
        from src.config import get_settings

        for name in ("SPROUT_GROWTH_REFERENCE", "SPROUT_ROSTER_POLL_SECONDS",
                     "SPROUT_FOLLOW_UP_HORIZON_DAYS", "SPROUT_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings()
        assert settings.growth_reference == "sample"
        assert settings.roster_poll_seconds == 5.0
        assert settings.follow_up_horizon_days is None
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        from src.config import get_settings

        monkeypatch.setenv("SPROUT_GROWTH_REFERENCE", "CDC")
        monkeypatch.setenv("SPROUT_FOLLOW_UP_HORIZON_DAYS", "30")

        settings = get_settings()
        assert settings.growth_reference == "cdc"
        assert settings.follow_up_horizon_days == 30

    @pytest.mark.parametrize("name,value", [
        ("SPROUT_GROWTH_REFERENCE", "nhanes"),
        ("SPROUT_ROSTER_POLL_SECONDS", "0"),
        ("SPROUT_FOLLOW_UP_HORIZON_DAYS", "soon"),
        ("SPROUT_LOG_LEVEL", "CHATTY"),
    ])
    def test_invalid(self, monkeypatch, name, value):
        from src.config import get_settings

        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError):
            get_settings()
