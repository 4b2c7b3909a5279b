import os
import sys
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../backend')))

from conftest import auth_header
from coredex.agents.groq_client import RemoteResult


@pytest.fixture
def groq(app):
    """Replace the shared remote client's completion call with a mock."""
    complete = MagicMock(return_value=RemoteResult.failure("Missing GROQ config"))
    app.state.analyzer.client.complete = complete
    return complete


def reply(text):
    return RemoteResult.success(text, {"choices": [{"message": {"content": text}}]})


def test_analyze_without_config_uses_fallback(client):
    response = client.post("/api/news/analyze", json={"content": "Breaking: moon made of cheese"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["source"] == "fallback"
    assert data["analysis"]["score"] == 55
    assert data["analysis"]["verdict"] == "uncertain"


def test_analyze_requires_content(client):
    response = client.post("/api/news/analyze", json={"content": "   "})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Content required"}


def test_analyze_with_remote_reply(client, groq, register):
    groq.return_value = reply('{"verdict":"Fake","score":12,"summary":"No source","reasons":["anonymous"]}')
    token = register()["token"]

    response = client.post("/api/news/analyze", json={"content": "Some claim"}, headers=auth_header(token))

    data = response.json()
    assert data["source"] == "groq"
    assert data["analysis"]["verdict"] == "fake"
    assert data["analysis"]["confidence"] == "Low"
    assert data["analysis"]["reasons"] == ["anonymous"]

    history = client.get("/api/news/history", headers=auth_header(token)).json()["history"]
    assert len(history) == 1
    assert history[0]["result"] == "fake"
    assert history[0]["credibility_score"] == 12


def test_anonymous_analysis_leaves_no_history(client, groq):
    groq.return_value = reply("Verdict: real")
    client.post("/api/news/analyze", json={"content": "Some claim"})
    assert client.get("/api/news/history").json()["history"] == []


def test_history_is_owner_scoped(client, register):
    alice = register()["token"]
    bob = register(name="Bob", email="bob@example.com")["token"]
    client.post("/api/news/analyze", json={"content": "alice 1"}, headers=auth_header(alice))
    client.post("/api/news/analyze", json={"content": "alice 2"}, headers=auth_header(alice))
    client.post("/api/news/analyze", json={"content": "bob 1"}, headers=auth_header(bob))

    alice_history = client.get("/api/news/history", headers=auth_header(alice)).json()["history"]
    assert [row["content"] for row in alice_history] == ["alice 2", "alice 1"]
    assert len(client.get("/api/news/history").json()["history"]) == 3


@pytest.mark.parametrize("limit, expected", [(5000, 3), (0, 1), (-5, 1), (2, 2), ("abc", 3), ("2.9", 2)])
def test_history_limit_is_clamped(client, register, limit, expected):
    token = register()["token"]
    for i in range(3):
        client.post("/api/news/analyze", json={"content": f"claim {i}"}, headers=auth_header(token))

    response = client.get(f"/api/news/history?limit={limit}", headers=auth_header(token))

    assert response.status_code == 200
    assert len(response.json()["history"]) == expected


def test_history_item_get_and_delete(client, register):
    alice = register()["token"]
    bob = register(name="Bob", email="bob@example.com")["token"]
    client.post("/api/news/analyze", json={"content": "mine"}, headers=auth_header(alice))
    item_id = client.get("/api/news/history", headers=auth_header(alice)).json()["history"][0]["id"]

    assert client.get(f"/api/news/history/{item_id}").json()["item"]["content"] == "mine"
    assert client.get("/api/news/history/9999").status_code == 404

    assert client.delete(f"/api/news/history/{item_id}").status_code == 401
    denied = client.delete(f"/api/news/history/{item_id}", headers=auth_header(bob))
    assert denied.status_code == 404
    assert denied.json()["error"] == "Not found or not permitted"

    assert client.delete(f"/api/news/history/{item_id}", headers=auth_header(alice)).status_code == 200
    assert client.get(f"/api/news/history/{item_id}").status_code == 404


def test_admin_can_delete_any_history_item(client, register, admin_token):
    alice = register()["token"]
    client.post("/api/news/analyze", json={"content": "mine"}, headers=auth_header(alice))
    item_id = client.get("/api/news/history", headers=auth_header(alice)).json()["history"][0]["id"]

    response = client.delete(f"/api/news/history/{item_id}", headers=auth_header(admin_token))

    assert response.status_code == 200


def test_chat_unavailable(client):
    response = client.post("/api/news/chat", json={"message": "hello", "session_id": "s1"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Chat service temporarily unavailable"
    assert data["response"]
    assert client.get("/api/news/chat/history").json()["history"] == []


def test_chat_requires_message(client):
    response = client.post("/api/news/chat", json={"message": ""})
    assert response.status_code == 400
    assert response.json()["error"] == "Message required"


def test_chat_history_flow(client, groq, register):
    groq.return_value = reply("Use trusted sources.")
    token = register()["token"]
    headers = auth_header(token)

    chat = client.post("/api/news/chat", json={"message": "How do I check?", "session_id": "s1"}, headers=headers)
    assert chat.json() == {"success": True, "response": "Use trusted sources.", "source": "groq"}
    client.post("/api/news/chat", json={"message": "Another", "session_id": "s2"}, headers=headers)

    grouped = client.get("/api/news/chat/history", headers=headers).json()["history"]
    assert [group["session_id"] for group in grouped] == ["s2", "s1"]

    transcript = client.get("/api/news/chat/history/s1", headers=headers).json()["messages"]
    assert [(m["sender"], m["message"]) for m in transcript] == [
        ("user", "How do I check?"),
        ("bot", "Use trusted sources."),
    ]

    assert client.delete("/api/news/chat/history/s1", headers=headers).json()["deleted"] == 1
    assert client.delete("/api/news/chat/history", headers=headers).json()["deleted"] == 1
    assert client.get("/api/news/chat/history", headers=headers).json()["history"] == []


def test_anonymous_chat_history_lists_recent_turns(client, groq):
    groq.return_value = reply("Hi")
    client.post("/api/news/chat", json={"message": "hello"})
    history = client.get("/api/news/chat/history").json()["history"]
    assert history[0]["user_message"] == "hello"
    assert client.get("/api/news/chat/history/any").status_code == 401


def test_analyze_storage_failure_is_generic_server_error(client, register):
    token = register()["token"]
    failure = OperationalError("INSERT INTO analysis_history", {}, Exception("disk I/O error"))

    with patch("coredex.agents.content_analyzer.save_analysis", side_effect=failure):
        response = client.post("/api/news/analyze", json={"content": "Some claim"}, headers=auth_header(token))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server error"}
    assert "disk I/O" not in response.text
    assert client.get("/api/news/history", headers=auth_header(token)).json()["history"] == []
