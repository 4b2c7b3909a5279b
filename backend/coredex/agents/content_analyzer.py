"""
content_analyzer.py - Content credibility analyzer

Sends free text to the remote scorer, normalizes the reply into a
verdict record and stores it in the history ledger for signed-in users.
A remote failure never reaches the caller: a fixed fallback record is
used instead.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlmodel import Session

from ..db.repositories.history import save_analysis
from ..utils.verdict_parser import VerdictRecord, normalize
from .groq_client import GroqClient, RemoteResult

logger = logging.getLogger(__name__)

SOURCE_GROQ = "groq"
SOURCE_FALLBACK = "fallback"


class EmptyContentError(ValueError):
    """Raised when there is nothing to analyse."""


@dataclass
class AnalysisResult:
    source: str
    analysis: Dict[str, Any]


class ContentAnalyzer:
    """
    Scores news content for credibility.

    Pipeline:
    1. Remote score (Groq)
    2. Normalize reply, or substitute the fallback record
    3. Persist for identified owners only
    """

    SYSTEM_PROMPT = (
        "You are a meticulous fact-checker. Prefer returning a JSON object with fields: "
        "verdict, score, confidence, summary, reasons (array). "
        "If returning non-JSON, produce a concise analysis paragraph."
    )

    # Used when the remote scorer is unreachable or errors
    FALLBACK_SCORE = 55
    FALLBACK_SUMMARY = "Fallback analysis used because the AI API failed or returned an error."

    def __init__(self, client: GroqClient):
        self.client = client

    def remote_score(self, content: str) -> RemoteResult:
        return self.client.complete(self.SYSTEM_PROMPT, content)

    def fallback_record(self) -> VerdictRecord:
        return VerdictRecord(
            verdict="uncertain",
            score=self.FALLBACK_SCORE,
            confidence="Medium",
            summary=self.FALLBACK_SUMMARY,
            reasons=[],
        )

    def analyze(self, session: Session, content: Optional[str], owner_id: Optional[int]) -> AnalysisResult:
        """
        Analyze content and record the result.

        Args:
            session: Open database session
            content: Text to analyse
            owner_id: Id of the calling user, None for anonymous callers

        Returns:
            AnalysisResult with source "groq" or "fallback"

        Raises:
            EmptyContentError: If content is empty after trimming
        """
        content = (content or "").strip()
        if not content:
            raise EmptyContentError("Content required")

        remote = self.remote_score(content)

        if not remote.ok:
            logger.warning(f"Groq failed ({remote.error}, status={remote.status}), using fallback")
            analysis = self.fallback_record().to_dict()
            source = SOURCE_FALLBACK
        else:
            analysis = normalize(remote.text).to_dict()
            # Raw model payload kept for diagnostics
            analysis["_raw_model"] = remote.raw if remote.raw is not None else remote.text
            source = SOURCE_GROQ

        save_analysis(session, owner_id, content, analysis)
        return AnalysisResult(source=source, analysis=analysis)
