from __future__ import annotations

from typing import Iterable, Sequence

from ..places.models import Candidate, Category
from .scoring import final_score


def _ordered_unique(categories: Iterable[Category]) -> list[Category]:
    seen: set[Category] = set()
    out: list[Category] = []
    for cat in categories:
        if cat not in seen:
            seen.add(cat)
            out.append(cat)
    return out


def rebalance(
    candidates: Sequence[Candidate],
    selected_categories: Iterable[Category],
    min_per_category: int = 4,
    top_picks_per_category: int = 1,
    total_cap: int | None = None,
) -> tuple[list[Candidate], list[Candidate]]:
    """
    Allocate candidates into pinned top picks and a category-balanced body.

    Steps:
    - Keep selected categories only, first occurrence of each id wins.
    - Rank each category by ``final_score`` (stable for ties).
    - Pin the best ``top_picks_per_category`` of each category, in the
      caller's category order.
    - Round-robin over categories until each has ``min_per_category`` body
      items or runs dry.
    - Fill with the rest by score, deferring an item that would repeat the
      previous entry's category, then top off with whatever was deferred.
      ``total_cap`` bounds only these two fill passes.

    Returns ``(top_picks, top_picks + body)``.
    """
    if min_per_category < 0 or top_picks_per_category < 0:
        raise ValueError("per-category counts must be non-negative")
    if total_cap is not None and total_cap < 0:
        raise ValueError("total_cap must be non-negative")

    order = _ordered_unique(selected_categories)
    wanted = set(order)

    # 0) filter + dedupe
    seen_ids: set[str] = set()
    filtered: list[Candidate] = []
    for c in candidates:
        if c.category in wanted and c.id not in seen_ids:
            seen_ids.add(c.id)
            filtered.append(c)

    # 1) per-category queues, best first
    groups: dict[Category, list[Candidate]] = {cat: [] for cat in order}
    for c in filtered:
        groups[c.category].append(c)
    for cat in order:
        groups[cat] = sorted(groups[cat], key=final_score, reverse=True)

    used: set[str] = set()
    top_picks: list[Candidate] = []

    # 2) pinned top picks
    for cat in order:
        queue = groups[cat]
        take = min(top_picks_per_category, len(queue))
        for c in queue[:take]:
            used.add(c.id)
            top_picks.append(c)
        groups[cat] = queue[take:]

    # 3) round-robin minimum fill
    body: list[Candidate] = []
    taken: dict[Category, int] = {cat: 0 for cat in order}

    def can_take(cat: Category) -> bool:
        return taken[cat] < min_per_category and bool(groups[cat])

    while any(can_take(cat) for cat in order):
        for cat in order:
            if not can_take(cat):
                continue
            c = groups[cat].pop(0)
            used.add(c.id)
            body.append(c)
            taken[cat] += 1

    def full() -> bool:
        return total_cap is not None and len(top_picks) + len(body) >= total_cap

    # 4) score-ordered fill, no two of a category back to back
    remaining = sorted(
        (c for cat in order for c in groups[cat]),
        key=final_score,
        reverse=True,
    )
    last = body[-1].category if body else (top_picks[-1].category if top_picks else None)
    for c in remaining:
        if full():
            break
        if c.id in used or c.category == last:
            continue
        body.append(c)
        used.add(c.id)
        last = c.category

    # 5) top off with the deferred items
    for c in remaining:
        if full():
            break
        if c.id not in used:
            body.append(c)
            used.add(c.id)

    return top_picks, top_picks + body
