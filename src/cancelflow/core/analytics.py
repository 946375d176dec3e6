from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from cancelflow.types import CancellationAnalytics, ConversionRates, FoundJobStats, RecentTrends

TREND_WINDOWS_DAYS = (7, 30, 90)


def _rate(count: int, total: int) -> float:
    return round(count / total, 3) if total else 0.0


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored in UTC.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def recent_trends(rows: Iterable[Any], now: datetime | None = None) -> RecentTrends:
    now = _as_utc(now or datetime.now(UTC))
    ages = [now - _as_utc(row.created_at) for row in rows if row.created_at is not None]
    counts = {days: sum(1 for age in ages if age <= timedelta(days=days)) for days in TREND_WINDOWS_DAYS}
    return RecentTrends(last_7_days=counts[7], last_30_days=counts[30], last_90_days=counts[90])


def calculate_analytics(
    cancellations: Iterable[Any],
    surveys: Iterable[Any],
    now: datetime | None = None,
) -> CancellationAnalytics:
    """Summarize cancellation history.

    Conversion rates and found-job stats only count flows that ended in a
    cancellation; every other row shows up in the breakdowns only.
    """
    rows = list(cancellations)
    total = len(rows)

    by_flow_type = {"standard": 0, "found_job": 0, "offer_accepted": 0}
    by_variant = {"A": 0, "B": 0}
    by_resolution = {"unresolved": 0, "cancelled": 0, "offer_accepted": 0, "renewed": 0, "reset": 0}
    cancelled_by_flow = {"standard": 0, "found_job": 0}
    cancelled_ids = set()
    for row in rows:
        by_flow_type[row.flow_type] = by_flow_type.get(row.flow_type, 0) + 1
        by_variant[row.downsell_variant] = by_variant.get(row.downsell_variant, 0) + 1
        key = row.resolution or "unresolved"
        by_resolution[key] = by_resolution.get(key, 0) + 1
        if row.resolution == "cancelled":
            cancelled_ids.add(row.id)
            if row.flow_type in cancelled_by_flow:
                cancelled_by_flow[row.flow_type] += 1

    stats = FoundJobStats()
    feedback_total = 0
    for survey in surveys:
        if survey.cancellation_id not in cancelled_ids or not survey.feedback:
            continue
        stats.total += 1
        if survey.via_migrate_mate in stats.via_migrate_mate:
            stats.via_migrate_mate[survey.via_migrate_mate] += 1
        if survey.visa_lawyer in stats.visa_lawyer:
            stats.visa_lawyer[survey.visa_lawyer] += 1
        feedback_total += len(survey.feedback)
    stats.average_feedback_length = round(feedback_total / stats.total) if stats.total else 0

    return CancellationAnalytics(
        total_cancellations=total,
        by_flow_type=by_flow_type,
        by_variant=by_variant,
        by_resolution=by_resolution,
        found_job_stats=stats,
        conversion_rates=ConversionRates(
            offer_accepted=_rate(by_resolution["offer_accepted"], total),
            direct_cancellation=_rate(cancelled_by_flow["standard"] + cancelled_by_flow["found_job"], total),
            found_job_cancellation=_rate(cancelled_by_flow["found_job"], total),
        ),
        recent_trends=recent_trends(rows, now),
    )
