from typing import List, Sequence, Tuple

from planit.schemas.activities.activity import ActivityOut
from planit.schemas.activities.board import BoardQuery, SortOrder

UNSCHEDULED = "unscheduled"


def _matches_search(activity: ActivityOut, needle: str) -> bool:
    for text in (activity.title, activity.description, activity.location):
        if text and needle in text.casefold():
            return True
    return False


def _sort(activities: List[ActivityOut], order: SortOrder) -> List[ActivityOut]:
    if order in (SortOrder.date_asc, SortOrder.date_desc):
        dated = [a for a in activities if a.date is not None]
        undated = [a for a in activities if a.date is None]
        dated = sorted(dated, key=lambda a: a.date, reverse=order == SortOrder.date_desc)
        # Undated activities trail in both directions
        return dated + undated
    if order == SortOrder.name_asc:
        return sorted(activities, key=lambda a: a.title.casefold())
    if order == SortOrder.name_desc:
        return sorted(activities, key=lambda a: a.title.casefold(), reverse=True)
    if order == SortOrder.category:
        return sorted(activities, key=lambda a: a.category.value)
    return list(activities)


def apply_filters(activities: Sequence[ActivityOut], query: BoardQuery) -> List[ActivityOut]:
    """Search, filter and sort a copy of ``activities``. The input is never touched."""
    filtered = list(activities)

    needle = query.search.strip().casefold()
    if needle:
        filtered = [a for a in filtered if _matches_search(a, needle)]
    if query.status != "all":
        filtered = [a for a in filtered if a.status.value == query.status]
    if query.category != "all":
        filtered = [a for a in filtered if a.category.value == query.category]

    return _sort(filtered, query.sort)


def group_by_date(activities: Sequence[ActivityOut]) -> List[Tuple[str, List[ActivityOut]]]:
    groups = {}
    unscheduled = []
    for activity in activities:
        if activity.date is None:
            unscheduled.append(activity)
        else:
            groups.setdefault(activity.date.isoformat(), []).append(activity)
    grouped = list(groups.items())
    if unscheduled:
        grouped.append((UNSCHEDULED, unscheduled))
    return grouped
