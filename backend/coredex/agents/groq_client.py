"""
groq_client.py - Remote scoring client

Thin client for Groq's OpenAI compatible chat completions endpoint.
Every call returns a RemoteResult; transport errors, non-2xx replies and
missing configuration are converted into the failure variant instead of
being raised.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import Settings

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout)


@dataclass
class RemoteResult:
    """Outcome of one remote call: ok with the reply text, or a failure descriptor."""
    ok: bool
    text: Optional[str] = None
    raw: Any = None
    error: Optional[str] = None
    status: Optional[int] = None
    body: Any = None

    @classmethod
    def success(cls, text: str, raw: Any) -> "RemoteResult":
        return cls(ok=True, text=text, raw=raw)

    @classmethod
    def failure(cls, error: str, status: Optional[int] = None, body: Any = None) -> "RemoteResult":
        return cls(ok=False, error=error, status=status, body=body)


def extract_reply_text(parsed: Any) -> str:
    """
    Pull the assistant text out of the response shapes seen in practice.

    Args:
        parsed: Decoded JSON response body

    Returns:
        The reply text; the whole body re-serialized when no known shape matches
    """
    if isinstance(parsed, dict):
        choices = parsed.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            first = choices[0]
            message = first.get("message")
            content = message.get("content") if isinstance(message, dict) else None
            if content is None:
                content = first.get("text")
            return content if content is not None else ""

        outputs = parsed.get("outputs")
        if isinstance(outputs, list) and outputs:
            first = outputs[0]
            if isinstance(first, str):
                return first
            if isinstance(first, dict) and first.get("content") is not None:
                return first["content"]
            return json.dumps(first)

    return json.dumps(parsed)


class GroqClient:
    """
    Sends chat completion requests to the configured Groq endpoint.
    """

    def __init__(self, settings: Settings):
        """Initialize client with API settings."""
        self.api_key = settings.GROQ_API_KEY or ""
        self.api_url = settings.GROQ_API_URL or ""
        self.model = settings.GROQ_MODEL
        self.temperature = settings.GROQ_TEMPERATURE
        self.max_tokens = settings.GROQ_MAX_TOKENS
        self.timeout = settings.GROQ_TIMEOUT_SECONDS
        self.max_attempts = max(1, settings.GROQ_MAX_RETRIES)

        logger.info(f"Groq client ready, model={self.model}, configured={self.is_configured}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    def complete(self, system_prompt: str, user_content: str) -> RemoteResult:
        """
        Run one chat completion.

        Args:
            system_prompt: Fixed instruction for the model
            user_content: The user's text

        Returns:
            RemoteResult; never raises
        """
        if not self.is_configured:
            logger.warning("Groq call skipped: missing GROQ config")
            return RemoteResult.failure("Missing GROQ config")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            logger.info(f"Calling Groq: {self.api_url} model={self.model}")
            response = self._post(payload)
        except requests.RequestException as e:
            logger.error(f"Error calling Groq: {e}")
            return RemoteResult.failure(str(e) or e.__class__.__name__)

        text = response.text
        try:
            parsed = response.json()
        except ValueError:
            parsed = None

        logger.debug(f"Raw Groq response: {parsed if parsed is not None else text}")

        if not response.ok:
            logger.warning(f"Groq API error: {response.status_code}")
            return RemoteResult.failure(
                f"Groq API error: {response.status_code}",
                status=response.status_code,
                body=parsed if parsed is not None else text,
            )

        if parsed is None:
            # Plain text body
            return RemoteResult.success(text, text)

        return RemoteResult.success(extract_reply_text(parsed), parsed)

    def _post(self, payload: dict) -> requests.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        )
        def send() -> requests.Response:
            return requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)

        return send()
