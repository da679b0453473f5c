from __future__ import annotations

from typing import Sequence

from market_globe.schemas.quote import Quote


def diff_quotes(previous: Sequence[Quote] | None, current: Sequence[Quote] | None) -> set[str]:
    """Return symbols whose percent change or direction moved since ``previous``.

    New symbols count as changed. An empty or missing batch on either side
    yields an empty set, so the first load does not flag every symbol.
    """
    if not previous or not current:
        return set()

    before = {quote.symbol: quote for quote in previous}
    changed: set[str] = set()
    for quote in current:
        old = before.get(quote.symbol)
        if old is None:
            changed.add(quote.symbol)
        elif old.change_pct != quote.change_pct or old.is_positive != quote.is_positive:
            changed.add(quote.symbol)
    return changed
