"""
Daily capacity rules for visits.

A visit's duration is derived from how many forms and products it covers.
The sum of durations on one calendar day may not exceed the daily capacity.
Both the API and the client store use these helpers so the two tiers agree.
"""

from typing import Any, Iterable, Optional

DAILY_CAPACITY_MINUTES = 480  # 8 hours
MINUTES_PER_FORM = 15
MINUTES_PER_PRODUCT = 5


def duration_for(forms: int, products: int) -> int:
    """Minutes needed for a visit with the given number of forms and products"""
    return max(0, int(forms or 0)) * MINUTES_PER_FORM + max(0, int(products or 0)) * MINUTES_PER_PRODUCT


def total_duration(visits: Iterable[Any], exclude_id: Optional[int] = None) -> int:
    """Sum the durations of ``visits``, skipping the one whose id is ``exclude_id``"""
    return sum(
        duration_for(visit.forms, visit.products)
        for visit in visits
        if exclude_id is None or visit.id != exclude_id
    )


def remaining_minutes(visits: Iterable[Any], exclude_id: Optional[int] = None) -> int:
    return DAILY_CAPACITY_MINUTES - total_duration(visits, exclude_id)


def can_accommodate(
    existing_visits: Iterable[Any],
    candidate_duration: int,
    exclude_id: Optional[int] = None,
) -> bool:
    """
    Check whether a visit of ``candidate_duration`` minutes fits on a day.

    Args:
        existing_visits: Visits already scheduled on the target date
        candidate_duration: Duration of the visit being created or edited
        exclude_id: Id of the visit being edited, so its previous duration
            does not count against itself

    Returns:
        True when the day's total stays within the daily capacity
    """
    return total_duration(existing_visits, exclude_id) + candidate_duration <= DAILY_CAPACITY_MINUTES
