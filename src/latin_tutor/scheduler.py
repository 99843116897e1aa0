"""Review-item scheduling.

A fixed, deterministic policy:

- incorrect: back to learning, streak reset, one more lapse, due tomorrow
- skipped: only deferred by a day
- correct while learning: intervals of 1, 3, then 7 days with promotion to review
- correct while in review: interval grows by half (capped at a year); items
  with a streak of 4+ and an interval of 30+ days retire
"""
import math
from datetime import datetime, timedelta
from typing import Optional

from latin_tutor.models import ReviewItem, ReviewResult, ReviewState, to_iso, utc_now

LEARNING_INTERVALS = {1: 1, 2: 3}
PROMOTION_INTERVAL = 7
GROWTH_FACTOR = 1.5
MAX_INTERVAL = 365
RETIRE_STREAK = 4
RETIRE_INTERVAL = 30


def _count(value) -> int:
    """Clamp a stored counter to a non-negative int."""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def _due(now: datetime, days: int) -> str:
    return to_iso(now + timedelta(days=days))


def next_schedule(item: ReviewItem, result, now: Optional[datetime] = None) -> dict:
    """Calculate the next schedule for a review item.

    Args:
        item: Current review item state
        result: ReviewResult (or its string value) of the attempt
        now: Reference instant, defaults to the current UTC time

    Returns:
        Dict of changed ReviewItem fields; ``due_at`` is an ISO string.
    """
    now = now or utc_now()
    try:
        result = ReviewResult(result)
    except ValueError:
        result = ReviewResult.SKIPPED
    streak = _count(item.streak)
    lapses = _count(item.lapses)
    interval = _count(item.interval_days)
    retired = item.state == ReviewState.RETIRED

    if result == ReviewResult.INCORRECT:
        return {
            "state": ReviewState.RETIRED if retired else ReviewState.LEARNING,
            "streak": 0,
            "lapses": lapses + 1,
            "interval_days": 0,
            "due_at": _due(now, 1),
        }

    if result == ReviewResult.SKIPPED:
        return {"due_at": _due(now, 1)}

    new_streak = streak + 1

    if item.state == ReviewState.LEARNING:
        if new_streak >= 3:
            new_state, new_interval = ReviewState.REVIEW, PROMOTION_INTERVAL
        else:
            new_state, new_interval = ReviewState.LEARNING, LEARNING_INTERVALS[new_streak]
        return {
            "state": new_state,
            "streak": new_streak,
            "interval_days": new_interval,
            "due_at": _due(now, new_interval),
        }

    # An item that never got an interval grows from the promotion interval
    new_interval = min(math.ceil((interval or PROMOTION_INTERVAL) * GROWTH_FACTOR), MAX_INTERVAL)
    if retired or (new_streak >= RETIRE_STREAK and new_interval >= RETIRE_INTERVAL):
        new_state = ReviewState.RETIRED
    else:
        new_state = ReviewState.REVIEW
    return {
        "state": new_state,
        "streak": new_streak,
        "interval_days": new_interval,
        "due_at": _due(now, new_interval),
    }


def suspension_update(suspended: bool) -> dict:
    """Toggle suspension. Un-suspending always returns the item to learning."""
    return {"state": ReviewState.SUSPENDED if suspended else ReviewState.LEARNING}
