"""Reconcile desired per-day commit counts with the commits already present."""

from dataclasses import dataclass
from typing import Dict, Iterable, List


@dataclass(frozen=True)
class CommitPlanEntry:
    date: str
    needed: int
    existing: int
    to_create: int


def contributions_to_map(days) -> Dict[str, int]:
    """Turn fetched ContributionDay entries into a date -> count mapping."""
    return {day.date: day.count for day in days}


def calculate_commit_plan(
    desired: Dict[str, int], existing: Dict[str, int]
) -> List[CommitPlanEntry]:
    """Compute how many commits each date is missing.

    Only dates in ``desired`` are considered. Dates that already have as many
    commits as needed, or more, are left out: excess commits are never
    removed. The result is sorted by date string, which for ``YYYY-MM-DD``
    is chronological.
    """
    plan = []
    for date, needed in desired.items():
        existing_count = existing.get(date, 0)
        to_create = max(0, needed - existing_count)
        if to_create > 0:
            plan.append(CommitPlanEntry(date, needed, existing_count, to_create))

    plan.sort(key=lambda entry: entry.date)
    return plan


def total_commits(plan: Iterable[CommitPlanEntry]) -> int:
    return sum(entry.to_create for entry in plan)
