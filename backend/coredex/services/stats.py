"""
stats.py - Admin Aggregator

Read-only aggregate queries over the history ledger for the admin
dashboard and the live stats stream. Percentages are integer-rounded and
an empty ledger yields 0 everywhere.
"""
from datetime import datetime, timedelta
from typing import Dict, List

from sqlalchemy import func
from sqlmodel import Session, select

from ..db.models import AnalysisHistory, User
from ..utils.scoring import percentage, rounded_percentages

ACTIVITY_DAYS = 30
TOP_USERS = 10
KNOWN_VERDICTS = ("fake", "real", "uncertain")


def count_users(session: Session) -> int:
    return session.exec(select(func.count()).select_from(User)).one()


def count_analyses(session: Session) -> int:
    return session.exec(select(func.count()).select_from(AnalysisHistory)).one()


def verdict_counts(session: Session) -> Dict[str, int]:
    rows = session.exec(
        select(AnalysisHistory.result, func.count(AnalysisHistory.id)).group_by(AnalysisHistory.result)
    ).all()
    counts = {verdict: 0 for verdict in KNOWN_VERDICTS}
    for result, count in rows:
        counts[result or "uncertain"] = counts.get(result or "uncertain", 0) + count
    return counts


def count_today(session: Session) -> int:
    """Analyses created since local midnight."""
    midnight = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return session.exec(
        select(func.count()).select_from(AnalysisHistory).where(AnalysisHistory.created_at >= midnight)
    ).one()


def daily_activity(session: Session, days: int = ACTIVITY_DAYS) -> List[Dict]:
    """Analyses per calendar day over the last `days` days, newest date first."""
    start = (datetime.now() - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    day = func.date(AnalysisHistory.created_at)
    rows = session.exec(
        select(day.label("date"), func.count(AnalysisHistory.id).label("count"))
        .where(AnalysisHistory.created_at >= start)
        .group_by(day)
        .order_by(day.desc())
    ).all()
    return [{"date": str(row.date), "count": row.count} for row in rows]


def top_users(session: Session, limit: int = TOP_USERS) -> List[Dict]:
    analysis_count = func.count(AnalysisHistory.id).label("analysis_count")
    rows = session.exec(
        select(User.id, User.name, analysis_count)
        .join(AnalysisHistory, AnalysisHistory.user_id == User.id, isouter=True)
        .group_by(User.id)
        .order_by(analysis_count.desc(), User.id.asc())
        .limit(limit)
    ).all()
    return [{"id": row.id, "name": row.name, "analysis_count": row.analysis_count} for row in rows]


def live_snapshot(session: Session) -> Dict[str, int]:
    """The three counters pushed on the live stats stream."""
    total = count_analyses(session)
    fake = verdict_counts(session).get("fake", 0)
    return {
        "totalUsers": count_users(session),
        "totalAnalysis": total,
        "fakePercentage": percentage(fake, total),
    }


def analytics_snapshot(session: Session) -> Dict:
    """
    Full dashboard snapshot.

    Returns:
        Dict with totals, per-verdict counts and percentages, today's
        count, 30-day activity histogram and top users
    """
    total = count_analyses(session)
    counts = verdict_counts(session)
    percentages = rounded_percentages(counts, total)

    return {
        "total_users": count_users(session),
        "total_analysis": total,
        "fake_count": counts["fake"],
        "real_count": counts["real"],
        "uncertain_count": counts["uncertain"],
        "fake_percentage": percentages["fake"],
        "real_percentage": percentages["real"],
        "uncertain_percentage": percentages["uncertain"],
        "verdict_counts": counts,
        "verdict_percentages": percentages,
        "today_analysis": count_today(session),
        "user_activity": daily_activity(session),
        "user_stats": top_users(session),
    }
