"""Filtering, sorting and "related items" for catalog listings."""
from typing import List, Optional


def _matches(item, term: str) -> bool:
    if term in item.name.lower():
        return True
    if item.description and term in item.description.lower():
        return True
    if any(term in benefit.lower() for benefit in item.health_benefits or []):
        return True
    return any(term in vitamin.lower() for vitamin in item.vitamins or [])


def filter_items(items, search: str = "", category: Optional[str] = "all", organic_only: bool = False) -> List:
    result = list(items)

    if category and category != "all":
        result = [item for item in result if item.category == category]

    term = (search or "").strip().lower()
    if term:
        result = [item for item in result if _matches(item, term)]

    if organic_only:
        result = [item for item in result if item.is_organic]

    return result


def sort_items(items, sort_by: Optional[str] = None) -> List:
    """`name` or `calories`; anything else keeps the incoming (newest first) order."""
    result = list(items)
    if sort_by == "name":
        result.sort(key=lambda item: item.name.lower())
    elif sort_by == "calories":
        result.sort(key=lambda item: item.calories or 0)
    return result


def _benefits_overlap(a: List[str], b: List[str]) -> bool:
    for x in a:
        for y in b:
            x_l, y_l = x.lower(), y.lower()
            if x_l in y_l or y_l in x_l:
                return True
    return False


def related_items(current, items, limit: int = 4) -> List:
    """
    Pick up to `limit` items to show next to `current`.

    Same category comes first, then items sharing a vitamin, then items
    with an overlapping health benefit, then whatever is left.
    """
    others = [item for item in items if item.id != current.id]
    vitamins = set(current.vitamins or [])
    benefits = current.health_benefits or []

    tiers = [
        [item for item in others if item.category == current.category],
        [item for item in others if vitamins.intersection(item.vitamins or [])],
        [item for item in others if _benefits_overlap(item.health_benefits or [], benefits)],
        others,
    ]

    picked, seen = [], set()
    for tier in tiers:
        for item in tier:
            if len(picked) >= limit:
                return picked
            if item.id not in seen:
                seen.add(item.id)
                picked.append(item)
    return picked
