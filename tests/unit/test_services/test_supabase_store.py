"""Tests for the Supabase-backed activity store."""

import pytest
from unittest.mock import Mock
from freezegun import freeze_time
from src.services.supabase_client import SupabaseActivityStore, get_supabase_client
from src.utils.errors import SupabaseError


def _client_returning(data=None, count=None):
    """Mock Supabase client whose query builder chain ends in ``execute()`` -> result."""
    result = Mock()
    result.data = data
    result.count = count

    query = Mock()
    for method in ("select", "insert", "update", "delete", "eq", "order", "limit", "is_"):
        getattr(query, method).return_value = query
    query.not_ = query
    query.execute.return_value = result

    client = Mock()
    client.table = Mock(return_value=query)
    return client, query


@pytest.mark.unit
def test_list_activities_orders_newest_first():
    client, query = _client_returning(data=[{"id": 2}, {"id": 1}])
    store = SupabaseActivityStore(client)

    assert store.list_activities() == [{"id": 2}, {"id": 1}]
    client.table.assert_called_with("activities")
    query.order.assert_any_call("created_at", desc=True)


@pytest.mark.unit
def test_insert_stamps_timestamps():
    client, query = _client_returning(data=[{"id": 10, "task_name": "Stamped"}])
    store = SupabaseActivityStore(client)

    with freeze_time("2025-06-01 12:00:00"):
        row = store.insert_activity({"task_name": "Stamped", "tags": "a,b", "bogus": 1})

    assert row["id"] == 10
    sent = query.insert.call_args[0][0]
    assert sent["task_name"] == "Stamped"
    assert sent["tags"] == "a,b"
    assert "bogus" not in sent
    assert sent["created_at"] == sent["updated_at"]
    assert sent["created_at"].startswith("2025-06-01T12:00:00")


@pytest.mark.unit
def test_insert_without_returned_row_raises():
    client, _ = _client_returning(data=[])

    with pytest.raises(SupabaseError):
        SupabaseActivityStore(client).insert_activity({"task_name": "Lost"})


@pytest.mark.unit
def test_replace_missing_returns_none():
    client, query = _client_returning(data=[])

    assert SupabaseActivityStore(client).replace_activity(5, {"task_name": "x"}) is None
    query.eq.assert_called_with("id", 5)


@pytest.mark.unit
def test_delete_reports_whether_row_matched():
    client, _ = _client_returning(data=[{"id": 5}])
    assert SupabaseActivityStore(client).delete_activity(5) is True

    client, _ = _client_returning(data=[])
    assert SupabaseActivityStore(client).delete_activity(5) is False


@pytest.mark.unit
def test_list_assignees_distinct_sorted():
    client, _ = _client_returning(data=[
        {"assignee": "Sarah Wilson"}, {"assignee": ""}, {"assignee": "Alex Brown"}, {"assignee": "Sarah Wilson"},
    ])

    assert SupabaseActivityStore(client).list_assignees() == ["Alex Brown", "Sarah Wilson"]


@pytest.mark.unit
def test_count_activities():
    client, _ = _client_returning(data=[], count=8)

    assert SupabaseActivityStore(client).count_activities() == 8


@pytest.mark.unit
def test_client_errors_wrapped():
    client, query = _client_returning()
    query.execute.side_effect = RuntimeError("connection reset")

    with pytest.raises(SupabaseError, match="connection reset"):
        SupabaseActivityStore(client).get_activity(1)


@pytest.mark.unit
def test_missing_credentials(monkeypatch):
    from src.utils.config import reset_settings
    import src.services.supabase_client as supabase_client

    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setattr(supabase_client, "_client", None)
    reset_settings()

    try:
        with pytest.raises(SupabaseError):
            get_supabase_client()
    finally:
        reset_settings()
