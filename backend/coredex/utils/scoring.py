"""
Scoring utilities shared by the content analyzer and the admin aggregator.
"""
import math
from typing import Dict, Optional

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores round .5 upwards
    return int(math.floor(value + 0.5))


def clamp_score(score: float) -> int:
    return max(0, min(100, round_half_up(score)))


def confidence_label(score: Optional[float]) -> str:
    """Map a 0-100 score to High / Medium / Low."""
    if score is None:
        return "Medium"
    if score >= HIGH_THRESHOLD:
        return "High"
    if score >= MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def percentage(part: int, total: int) -> int:
    if not total:
        return 0
    return round_half_up(part * 100 / total)


def rounded_percentages(counts: Dict[str, int], total: int) -> Dict[str, int]:
    """
    Percentage of each count over total, integer-rounded, never summing past 100.

    Independent rounding can overshoot (16.5 + 16.5 + 67 -> 101); the
    entries that were rounded up the most give the excess back.
    """
    result = {key: percentage(count, total) for key, count in counts.items()}
    if not total:
        return result

    overshoot = sum(result.values()) - 100
    if overshoot > 0:
        by_round_up = sorted(
            counts,
            key=lambda key: result[key] - counts[key] * 100 / total,
            reverse=True,
        )
        for key in by_round_up[:overshoot]:
            result[key] -= 1
    return result
