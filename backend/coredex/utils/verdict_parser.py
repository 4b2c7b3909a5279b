"""
verdict_parser.py - Model output normalization

The remote model is asked for a JSON verdict but does not always comply.
Its reply may be clean JSON, JSON wrapped in prose, "Key: value" lines or
plain prose. `normalize` turns any of these into a VerdictRecord and
never fails.

Parsers are tried in order and the first one that recognises the text
wins:
1. Empty reply        -> fixed uncertain record
2. Embedded JSON blob -> fields read from the object
3. Labeled lines      -> verdict / confidence / summary labels
4. Anything else      -> uncertain record with the text as summary
"""
import json
import logging
import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .scoring import clamp_score, confidence_label, round_half_up
from .text_normalize import collapse_lines, split_list_items

logger = logging.getLogger(__name__)

DEFAULT_VERDICT = "uncertain"
DEFAULT_SCORE = 50
DEFAULT_CONFIDENCE = "Medium"
MAX_REASONS = 10

# Greedy: from the first "{" to the last "}"
_JSON_BLOB = re.compile(r"\{[\s\S]*\}")
_FIRST_NUMBER = re.compile(r"([0-9]{1,3})")
_ANY_DIGITS = re.compile(r"(\d+)")

_VERDICT_LABEL = re.compile(r'verdict\s*[:=]\s*("?)([a-zA-Z0-9 _-]+)\1', re.IGNORECASE)
_CONFIDENCE_NUMBER = re.compile(r'confidence\s*[:=]\s*("?)([0-9]{1,3})\s*%?\1', re.IGNORECASE)
_CONFIDENCE_WORD = re.compile(r'confidence\s*[:=]\s*("?)(high|medium|low)\1', re.IGNORECASE)
_SUMMARY_LABEL = re.compile(r"(?:explanation|summary|analysis)\s*[:=]\s*(.+)$", re.IGNORECASE)
_REASONS_SECTION = re.compile(r"(?:reasons|evidence|because|why)[:\-\s]*([\s\S]*)", re.IGNORECASE)


@dataclass
class VerdictRecord:
    """Fixed shape every analysis is reduced to."""
    verdict: str = DEFAULT_VERDICT
    score: int = DEFAULT_SCORE
    confidence: str = DEFAULT_CONFIDENCE
    summary: str = ""
    reasons: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


def _score_from_number(value: float) -> int:
    # 1e999 overflows to inf
    if math.isinf(value):
        return 100 if value > 0 else 0
    return round_half_up(value)


# ---------------------------------------------------------------------------
# 1. Embedded JSON
# ---------------------------------------------------------------------------

def parse_json_blob(raw: str) -> Optional[VerdictRecord]:
    match = _JSON_BLOB.search(raw)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0), parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        logger.warning("JSON parse of model output failed, falling back to heuristics")
        return None
    if not isinstance(parsed, dict):
        return None

    verdict = parsed.get("verdict") or parsed.get("result") or DEFAULT_VERDICT

    score = DEFAULT_SCORE
    raw_confidence = parsed.get("confidence")
    if _is_number(parsed.get("score")):
        score = _score_from_number(parsed["score"])
    elif isinstance(raw_confidence, str):
        number = _FIRST_NUMBER.search(raw_confidence)
        if number:
            score = int(number.group(1))

    confidence = str(raw_confidence) if raw_confidence else confidence_label(score)
    summary = parsed.get("summary") or parsed.get("explanation") or parsed.get("message") or ""

    reasons = parsed.get("reasons")
    if isinstance(reasons, list):
        reasons = list(reasons)
    elif reasons:
        reasons = [reasons]
    else:
        reasons = []

    return VerdictRecord(
        verdict=str(verdict).lower(),
        score=clamp_score(score),
        confidence=confidence,
        summary=str(summary),
        reasons=reasons,
    )


# ---------------------------------------------------------------------------
# 2. Labeled lines
# ---------------------------------------------------------------------------

def _match_verdict(line: str) -> Dict[str, Any]:
    match = _VERDICT_LABEL.search(line)
    verdict = match.group(2).strip().lower() if match else ""
    return {"verdict": verdict} if verdict else {}


def _match_confidence(line: str) -> Dict[str, Any]:
    match = _CONFIDENCE_NUMBER.search(line)
    if match:
        score = int(match.group(2))
        return {"score": score, "confidence": f"{score}%"}
    match = _CONFIDENCE_WORD.search(line)
    if match:
        return {"confidence": match.group(2)}
    return {}


def _match_summary(line: str) -> Dict[str, Any]:
    match = _SUMMARY_LABEL.search(line)
    summary = match.group(1).strip() if match else ""
    return {"summary": summary} if summary else {}


_LABEL_MATCHERS: List[Callable[[str], Dict[str, Any]]] = [
    _match_verdict,
    _match_confidence,
    _match_summary,
]


def extract_reasons(raw: str) -> List[str]:
    section = _REASONS_SECTION.search(raw)
    if not section:
        return []
    return split_list_items(section.group(1), MAX_REASONS)


def parse_labeled_lines(raw: str) -> Optional[VerdictRecord]:
    line = collapse_lines(raw)

    partial: Dict[str, Any] = {}
    for matcher in _LABEL_MATCHERS:
        partial.update(matcher(line))
    if not partial:
        return None

    score = partial.get("score")
    confidence = partial.get("confidence")
    if score is None:
        digits = _ANY_DIGITS.search(confidence) if confidence else None
        score = int(digits.group(1)) if digits else DEFAULT_SCORE

    return VerdictRecord(
        verdict=partial.get("verdict") or DEFAULT_VERDICT,
        score=clamp_score(score),
        confidence=confidence or confidence_label(score),
        summary=partial.get("summary") or raw,
        reasons=extract_reasons(raw),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

_PARSERS: List[Callable[[str], Optional[VerdictRecord]]] = [
    parse_json_blob,
    parse_labeled_lines,
]


def normalize(text: Optional[str]) -> VerdictRecord:
    """
    Normalize raw model output into a VerdictRecord.

    Args:
        text: Reply text from the remote model (may be empty or None)

    Returns:
        VerdictRecord; never raises
    """
    if not text:
        return VerdictRecord()

    raw = str(text).strip()
    for parser in _PARSERS:
        record = parser(raw)
        if record is not None:
            return record

    return VerdictRecord(summary=raw)
