"""
chat_agent.py - News assistant chat

Answers free-form questions about news and fact-checking through the
same remote client as the analyzer. Successful turns are stored in the
history ledger under the caller's conversation key.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session

from ..db.repositories.history import save_chat_turn
from .content_analyzer import ContentAnalyzer
from .groq_client import GroqClient

logger = logging.getLogger(__name__)


class EmptyMessageError(ValueError):
    """Raised when the chat message is empty."""


@dataclass
class ChatReply:
    ok: bool
    response: str
    error: Optional[str] = None


class ChatAgent:

    # Same fact-checker instruction the analyzer sends
    SYSTEM_PROMPT = ContentAnalyzer.SYSTEM_PROMPT

    PROMPT_TEMPLATE = (
        "You are COREDEX AI, an expert in news analysis and fact-checking. Respond helpfully to "
        "this user query about news, fake news detection, or related topics: \"{message}\"\n\n"
        "Please provide a concise, informative response. If the query is about analyzing specific "
        "news content, suggest using the analysis tool. Keep responses under 300 words."
    )

    UNAVAILABLE_ERROR = "Chat service temporarily unavailable"
    UNAVAILABLE_REPLY = "Sorry, I'm having trouble connecting right now. Please try again later."
    EMPTY_REPLY = "I apologize, but I couldn't generate a response."

    def __init__(self, client: GroqClient):
        self.client = client

    def reply(
        self,
        session: Session,
        message: Optional[str],
        owner_id: Optional[int],
        session_id: Optional[str],
    ) -> ChatReply:
        message = (message or "").strip()
        if not message:
            raise EmptyMessageError("Message required")

        remote = self.client.complete(self.SYSTEM_PROMPT, self.PROMPT_TEMPLATE.format(message=message))
        if not remote.ok:
            logger.warning(f"Groq chat failed: {remote.error}")
            return ChatReply(ok=False, response=self.UNAVAILABLE_REPLY, error=self.UNAVAILABLE_ERROR)

        text = remote.text or self.EMPTY_REPLY
        save_chat_turn(session, owner_id, session_id or None, message, text)
        return ChatReply(ok=True, response=text)
