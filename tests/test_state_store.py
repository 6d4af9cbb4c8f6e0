import json

import pytest

from storage.state_store import KeyValueStore


def test_user_values_are_namespaced(store):
    store.for_user("alice").set("syncedCalendarEvents", ["E1"])
    store.for_user("bob").set("syncedCalendarEvents", ["E2"])

    assert store.get("syncedCalendarEvents_alice") == ["E1"]
    assert store.for_user("bob").get("syncedCalendarEvents") == ["E2"]
    assert store.for_user("carol").get("syncedCalendarEvents", []) == []


def test_values_survive_a_new_store_instance(settings):
    KeyValueStore(settings.state_path).for_user("alice").set("lastCalendarSync", "2024-01-03")

    reopened = KeyValueStore(settings.state_path)
    assert reopened.for_user("alice").get("lastCalendarSync") == "2024-01-03"
    assert json.loads(settings.state_path.read_text(encoding="utf-8")) == {
        "lastCalendarSync_alice": "2024-01-03"
    }


def test_legacy_key_is_migrated_once_and_removed(store):
    store.set("connectedCalendars", [{"email": "old@example.com"}])

    migrated = store.for_user("alice").get("connectedCalendars")

    assert migrated == [{"email": "old@example.com"}]
    assert store.get("connectedCalendars_alice") == migrated
    assert not store.contains("connectedCalendars")
    # a second user on the same device does not inherit the first user's data
    assert store.for_user("bob").get("connectedCalendars") is None


def test_existing_user_value_wins_over_legacy(store):
    store.set("customCategories", ["Legacy"])
    store.for_user("alice").set("customCategories", ["Mine"])

    assert store.for_user("alice").get("customCategories") == ["Mine"]
    assert store.contains("customCategories")


def test_clear_removes_only_that_users_keys(store):
    alice = store.for_user("alice")
    alice.set("syncedCalendarEvents", ["E1"])
    alice.set("lastCalendarSync", "2024-01-03")
    store.for_user("bob").set("syncedCalendarEvents", ["E2"])

    alice.clear()

    assert alice.get("syncedCalendarEvents") is None
    assert store.for_user("bob").get("syncedCalendarEvents") == ["E2"]


def test_clear_named_keys(store):
    alice = store.for_user("alice")
    alice.set("syncedCalendarEvents", ["E1"])
    alice.set("lastCalendarSync", "2024-01-03")

    alice.clear(["lastCalendarSync"])

    assert alice.get("syncedCalendarEvents") == ["E1"]
    assert alice.get("lastCalendarSync") is None


def test_corrupt_file_reads_as_empty(settings):
    settings.state_path.write_text("{not json", encoding="utf-8")
    assert KeyValueStore(settings.state_path).get("anything", "default") == "default"


def test_user_id_is_required(store):
    with pytest.raises(ValueError):
        store.for_user("")
