import os
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../backend')))

from coredex.agents.groq_client import GroqClient, extract_reply_text
from coredex.config import Settings


def make_settings(**overrides):
    values = dict(
        _env_file=None,
        GROQ_API_KEY="test-key",
        GROQ_API_URL="https://groq.test/v1/chat/completions",
        GROQ_MAX_RETRIES=1,
    )
    values.update(overrides)
    return Settings(**values)


def make_response(status=200, payload=None, text=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    if payload is None:
        response.json.side_effect = ValueError("not json")
        response.text = text or ""
    else:
        response.json.return_value = payload
        response.text = text or str(payload)
    return response


def test_missing_config_fails_without_network():
    client = GroqClient(make_settings(GROQ_API_KEY=""))
    with patch("coredex.agents.groq_client.requests.post") as mock_post:
        result = client.complete("system", "hello")
    assert not result.ok
    assert result.error == "Missing GROQ config"
    mock_post.assert_not_called()


@patch("coredex.agents.groq_client.requests.post")
def test_chat_completion_shape(mock_post):
    payload = {"choices": [{"message": {"content": '{"verdict":"real"}'}}]}
    mock_post.return_value = make_response(payload=payload)

    result = GroqClient(make_settings()).complete("system", "hello")

    assert result.ok
    assert result.text == '{"verdict":"real"}'
    assert result.raw == payload

    kwargs = mock_post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer test-key"
    assert kwargs["json"]["model"] == "llama-3.3-70b-versatile"
    assert kwargs["json"]["temperature"] == 0.12
    assert kwargs["json"]["max_tokens"] == 900
    assert kwargs["json"]["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["timeout"] == 30.0


@patch("coredex.agents.groq_client.requests.post")
def test_plain_text_body_is_success(mock_post):
    mock_post.return_value = make_response(text="Verdict: fake")
    result = GroqClient(make_settings()).complete("system", "hello")
    assert result.ok
    assert result.text == "Verdict: fake"


@patch("coredex.agents.groq_client.requests.post")
def test_error_status_is_failure(mock_post):
    mock_post.return_value = make_response(status=429, payload={"error": "rate limited"})
    result = GroqClient(make_settings()).complete("system", "hello")
    assert not result.ok
    assert result.status == 429
    assert result.error == "Groq API error: 429"
    assert result.body == {"error": "rate limited"}


@patch("coredex.agents.groq_client.requests.post")
def test_transport_error_is_failure(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")
    result = GroqClient(make_settings()).complete("system", "hello")
    assert not result.ok
    assert "connection refused" in result.error


@patch("coredex.agents.groq_client.requests.post")
def test_transient_error_is_retried(mock_post):
    payload = {"choices": [{"text": "done"}]}
    mock_post.side_effect = [requests.Timeout("slow"), make_response(payload=payload)]

    result = GroqClient(make_settings(GROQ_MAX_RETRIES=2)).complete("system", "hello")

    assert result.ok
    assert result.text == "done"
    assert mock_post.call_count == 2


@pytest.mark.parametrize("parsed, expected", [
    ({"choices": [{"message": {"content": "a"}}]}, "a"),
    ({"choices": [{"text": "b"}]}, "b"),
    ({"choices": [{}]}, ""),
    ({"outputs": ["c"]}, "c"),
    ({"outputs": [{"content": "d"}]}, "d"),
    ({"other": 1}, '{"other": 1}'),
])
def test_extract_reply_text(parsed, expected):
    assert extract_reply_text(parsed) == expected
