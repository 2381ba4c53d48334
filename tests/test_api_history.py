"""Tests for the history endpoints."""
import pytest

from conftest import TEST_PASSWORD, auth_headers, register


def _save(client, headers, type="explain", input_text="What is a cell?", result="The basic unit of life.", url=None):
    body = {"type": type, "inputText": input_text, "result": result}
    if url is not None:
        body["url"] = url
    return client.post("/api/history", json=body, headers=headers)


def test_save_returns_created_entry(client, user, clock):
    _, headers, _ = user
    response = _save(client, headers, url="https://example.com/cells")
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "History saved successfully"
    entry = data["history"]
    assert entry["type"] == "explain"
    assert entry["inputText"] == "What is a cell?"
    assert entry["url"] == "https://example.com/cells"
    assert entry["createdAt"] == clock().isoformat()


@pytest.mark.parametrize(
    "body,error",
    [
        ({"inputText": "q", "result": "a"}, "Missing required fields: type, inputText, result"),
        ({"type": "quiz", "inputText": "q", "result": "a"}, "Invalid type. Must be: explain, summarize, or flashcards"),
        ({"type": "explain", "inputText": "x" * 5001, "result": "a"}, "Input text cannot exceed 5000 characters"),
    ],
)
def test_save_validation(client, user, body, error):
    _, headers, _ = user
    response = client.post("/api/history", json=body, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == error


def test_requires_auth(client):
    assert client.get("/api/history").status_code == 401
    assert _save(client, {}).status_code == 401


def test_list_with_pagination(client, user, clock):
    _, headers, _ = user
    for i in range(5):
        _save(client, headers, input_text=f"question {i}")
        clock.advance(minutes=1)

    response = client.get("/api/history", params={"limit": 2, "skip": 2}, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [h["inputText"] for h in data["history"]] == ["question 2", "question 1"]
    assert data["pagination"] == {
        "total": 5,
        "limit": 2,
        "skip": 2,
        "hasMore": True,
        "page": 2,
        "totalPages": 3,
    }


def test_list_filter_and_search(client, user):
    _, headers, _ = user
    _save(client, headers, type="explain", input_text="Newton's laws")
    _save(client, headers, type="flashcards", input_text="Newton flashcards")
    _save(client, headers, type="summarize", input_text="French revolution")

    by_type = client.get("/api/history", params={"type": "flashcards"}, headers=headers).json()
    assert [h["type"] for h in by_type["history"]] == ["flashcards"]

    by_search = client.get("/api/history", params={"search": "NEWTON"}, headers=headers).json()
    assert by_search["pagination"]["total"] == 2


@pytest.mark.parametrize("limit", [0, 101])
def test_list_rejects_out_of_range_limit(client, user, limit):
    _, headers, _ = user
    response = client.get("/api/history", params={"limit": limit}, headers=headers)
    assert response.status_code == 400


def test_get_and_delete_by_id(client, user):
    _, headers, _ = user
    entry_id = _save(client, headers).json()["history"]["id"]

    fetched = client.get(f"/api/history/{entry_id}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["history"]["id"] == entry_id

    deleted = client.delete(f"/api/history/{entry_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "History item deleted successfully"

    gone = client.get(f"/api/history/{entry_id}", headers=headers)
    assert gone.status_code == 404
    assert gone.json()["error"] == "History item not found"


def test_other_users_entries_look_missing(client, user):
    _, headers, _ = user
    entry_id = _save(client, headers).json()["history"]["id"]
    intruder = auth_headers(register(client, "intruder@example.com")["token"])

    assert client.get(f"/api/history/{entry_id}", headers=intruder).status_code == 404
    assert client.delete(f"/api/history/{entry_id}", headers=intruder).status_code == 404
    assert client.get("/api/history", headers=intruder).json()["count"] == 0
    assert client.get(f"/api/history/{entry_id}", headers=headers).status_code == 200


def test_stats(client, user):
    _, headers, _ = user
    _save(client, headers, type="explain")
    _save(client, headers, type="explain")
    _save(client, headers, type="summarize")

    stats = client.get("/api/history/stats", headers=headers).json()["stats"]
    assert stats == {
        "total": 3,
        "explain": 2,
        "summarize": 1,
        "flashcards": 0,
        "recentActivity": {"last7Days": 3},
    }


def test_clear(client, user):
    _, headers, _ = user
    _save(client, headers)
    _save(client, headers)

    response = client.delete("/api/history/clear", headers=headers)
    assert response.status_code == 200
    assert response.json()["deletedCount"] == 2
    assert response.json()["message"] == "All history cleared. 2 items deleted."
    assert client.get("/api/history", headers=headers).json()["count"] == 0


def _relogin(client):
    # Tokens last 30 days, so long clock jumps need a fresh one
    response = client.post("/api/user/login", json={"email": "student@example.com", "password": TEST_PASSWORD})
    return auth_headers(response.json()["token"])


def test_cleanup_uses_days_param_and_default(client, user, clock):
    _, headers, _ = user
    _save(client, headers, input_text="very old")
    clock.advance(days=40)
    headers = _relogin(client)
    _save(client, headers, input_text="a month old")
    clock.advance(days=31)
    headers = _relogin(client)

    # Default retention is 90 days: nothing is old enough yet
    default = client.delete("/api/history/cleanup", headers=headers).json()
    assert default["deletedCount"] == 0
    assert default["message"] == "Deleted history older than 90 days"

    response = client.delete("/api/history/cleanup", params={"days": 60}, headers=headers)
    assert response.json()["deletedCount"] == 1
    remaining = client.get("/api/history", headers=headers).json()["history"]
    assert [h["inputText"] for h in remaining] == ["a month old"]
