"""Tests for owner-scoped history storage."""
import pytest

from study_helper.core.errors import NotFound, ValidationError
from study_helper.models.user import Account
from study_helper.services.history_store import HistoryStore


def _account(db, clock, email):
    acct = Account(email=email, hashed_password="x", window_start=clock(), created_at=clock())
    db.add(acct)
    db.commit()
    db.refresh(acct)
    return acct


@pytest.fixture
def alice(db, clock):
    return _account(db, clock, "alice@example.com")


@pytest.fixture
def bob(db, clock):
    return _account(db, clock, "bob@example.com")


@pytest.fixture
def store(db, clock):
    return HistoryStore(db, max_input_chars=5000, clock=clock)


def test_save_and_get(store, alice):
    entry = store.save(alice.id, "explain", "What is osmosis?", "Water moves...", " https://example.com/bio ")
    fetched = store.get(alice.id, entry.id)
    assert fetched.type == "explain"
    assert fetched.input_text == "What is osmosis?"
    assert fetched.url == "https://example.com/bio"


def test_save_defaults_url_to_empty(store, alice):
    entry = store.save(alice.id, "summarize", "text", "summary")
    assert entry.url == ""


@pytest.mark.parametrize(
    "entry_type,input_text,result",
    [
        (None, "text", "result"),
        ("explain", "", "result"),
        ("explain", "text", None),
    ],
)
def test_save_requires_fields(store, alice, entry_type, input_text, result):
    with pytest.raises(ValidationError):
        store.save(alice.id, entry_type, input_text, result)


def test_save_rejects_unknown_type(store, alice):
    with pytest.raises(ValidationError) as exc_info:
        store.save(alice.id, "translate", "text", "result")
    assert "explain, summarize, or flashcards" in exc_info.value.message


def test_save_rejects_oversized_input(store, alice):
    with pytest.raises(ValidationError):
        store.save(alice.id, "explain", "x" * 5001, "result")
    # Exactly at the limit is fine
    store.save(alice.id, "explain", "x" * 5000, "result")


def test_other_owner_cannot_read_or_delete(store, alice, bob):
    entry = store.save(alice.id, "explain", "alice's question", "answer")

    with pytest.raises(NotFound):
        store.get(bob.id, entry.id)
    with pytest.raises(NotFound):
        store.delete(bob.id, entry.id)

    # Still there for its owner
    assert store.get(alice.id, entry.id).id == entry.id


def test_list_is_scoped_to_owner(store, alice, bob):
    store.save(alice.id, "explain", "alice 1", "a")
    store.save(bob.id, "explain", "bob 1", "b")
    store.save(alice.id, "flashcards", "alice 2", "c")

    entries, total = store.list(alice.id)
    assert total == 2
    assert {e.user_id for e in entries} == {alice.id}


def test_list_newest_first(store, alice, clock):
    first = store.save(alice.id, "explain", "first", "a")
    clock.advance(minutes=5)
    second = store.save(alice.id, "explain", "second", "b")

    entries, _ = store.list(alice.id)
    assert [e.id for e in entries] == [second.id, first.id]


def test_list_filters_by_type(store, alice):
    store.save(alice.id, "explain", "q1", "a")
    store.save(alice.id, "summarize", "q2", "b")

    entries, total = store.list(alice.id, type="summarize")
    assert total == 1
    assert entries[0].type == "summarize"


def test_list_ignores_unknown_type_filter(store, alice):
    store.save(alice.id, "explain", "q1", "a")
    store.save(alice.id, "summarize", "q2", "b")
    _, total = store.list(alice.id, type="bogus")
    assert total == 2


def test_list_search_is_case_insensitive_over_input_and_result(store, alice):
    store.save(alice.id, "explain", "Photosynthesis basics", "plants")
    store.save(alice.id, "explain", "Cell division", "Mitosis and PHOTOSYNTHESIS differ")
    store.save(alice.id, "explain", "Gravity", "falls")

    _, total = store.list(alice.id, search="photosynthesis")
    assert total == 2


def test_list_search_treats_wildcards_literally(store, alice):
    store.save(alice.id, "explain", "100% sure", "a")
    store.save(alice.id, "explain", "1000 things", "b")
    _, total = store.list(alice.id, search="100%")
    assert total == 1


def test_list_paginates(store, alice, clock):
    for i in range(5):
        store.save(alice.id, "explain", f"q{i}", "a")
        clock.advance(seconds=1)

    page, total = store.list(alice.id, limit=2, skip=2)
    assert total == 5
    assert [e.input_text for e in page] == ["q2", "q1"]


def test_clear_only_affects_owner(store, alice, bob):
    store.save(alice.id, "explain", "a1", "a")
    store.save(alice.id, "explain", "a2", "a")
    store.save(bob.id, "explain", "b1", "b")

    assert store.clear(alice.id) == 2
    assert store.list(alice.id)[1] == 0
    assert store.list(bob.id)[1] == 1


def test_stats(store, alice, bob, clock):
    store.save(alice.id, "explain", "old", "a")
    clock.advance(days=10)
    store.save(alice.id, "explain", "q", "a")
    store.save(alice.id, "flashcards", "q", "a")
    store.save(bob.id, "summarize", "q", "a")

    stats = store.stats(alice.id)
    assert stats["total"] == 3
    assert stats["explain"] == 2
    assert stats["summarize"] == 0
    assert stats["flashcards"] == 1
    assert stats["recentActivity"] == {"last7Days": 2}


def test_cleanup_deletes_only_old_entries_of_owner(store, alice, bob, clock):
    store.save(alice.id, "explain", "ancient", "a")
    store.save(bob.id, "explain", "bob ancient", "b")
    clock.advance(days=100)
    store.save(alice.id, "explain", "fresh", "a")

    assert store.cleanup(alice.id, days=90) == 1
    entries, _ = store.list(alice.id)
    assert [e.input_text for e in entries] == ["fresh"]
    assert store.list(bob.id)[1] == 1


def test_cleanup_rejects_non_positive_days(store, alice):
    with pytest.raises(ValidationError):
        store.cleanup(alice.id, days=0)


def test_purge_older_than_covers_all_owners(store, alice, bob, clock):
    store.save(alice.id, "explain", "a", "a")
    store.save(bob.id, "explain", "b", "b")
    clock.advance(days=91)
    store.save(bob.id, "explain", "new", "b")

    assert store.purge_older_than(90) == 2
    assert store.list(bob.id)[1] == 1
