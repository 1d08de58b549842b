"""Transformations on bracket tables.

Every function here takes tables and returns a fresh table. The typical
composition for one taxing authority is

    stack_tax_brackets(
        ordinary_income,
        append_deduction_to_bracket(deduction, income_brackets),
        append_deduction_to_bracket(deduction, capital_gains_brackets),
    )

and `merge_tax_brackets` adds authorities together (federal + state).
"""
from typing import List, Sequence

from income_tax import TaxBracket, rate_at


def flatten_tax_brackets(brackets: Sequence[TaxBracket]) -> List[TaxBracket]:
    """Combine neighbouring tiers that charge the same rate."""
    flat: List[TaxBracket] = []
    for b in brackets:
        if flat and flat[-1].rate == b.rate:
            flat[-1] = TaxBracket(start=flat[-1].start, end=b.end, rate=b.rate)
        else:
            flat.append(b)
    return flat


def append_deduction_to_bracket(deduction: float, brackets: Sequence[TaxBracket]) -> List[TaxBracket]:
    """Build the deduction into the table as a widened 0% tier.

    Taxing `income` against the result is the same as taxing
    `max(0, income - deduction)` against the table as given.
    """
    if deduction == 0:
        return flatten_tax_brackets(brackets)

    shifted: List[TaxBracket] = [TaxBracket(start=0, end=deduction, rate=0.0)]
    for i, b in enumerate(brackets):
        end = None if b.end is None else b.end + deduction
        if i == 0 and b.rate == 0:
            # widen the existing untaxed tier instead of adding a second one
            shifted = [TaxBracket(start=0, end=end, rate=0.0)]
            continue
        shifted.append(TaxBracket(start=b.start + deduction, end=end, rate=b.rate))
    return flatten_tax_brackets(shifted)


def _summed_rate(value: float, first: Sequence[TaxBracket], second: Sequence[TaxBracket]) -> float:
    # scaled to keep 0.1 + 0.02 from drifting
    return (1000 * rate_at(value, first) + 1000 * rate_at(value, second)) / 1000


def merge_tax_brackets(first: Sequence[TaxBracket], second: Sequence[TaxBracket]) -> List[TaxBracket]:
    """Sum two authorities' marginal rates over every sub-interval."""
    bounds = set()
    for b in list(first) + list(second):
        bounds.add(b.start)
        bounds.add(0 if b.end is None else b.end)
    ordered = sorted(bounds)

    merged = []
    for i, start in enumerate(ordered):
        end = ordered[i + 1] if i + 1 < len(ordered) else None
        merged.append(TaxBracket(start=start, end=end, rate=_summed_rate(start, first, second)))
    return flatten_tax_brackets(merged)


def stack_tax_brackets(
    pivot: float,
    bottom: Sequence[TaxBracket],
    top: Sequence[TaxBracket],
) -> List[TaxBracket]:
    """Layer `top` over `bottom` at `pivot`.

    Below the pivot the bottom table applies (ordinary income on its own
    ladder). Above it the top table applies at the rates it charges for the
    combined amount (capital gains taxed as if sitting on top of ordinary
    income).
    """
    stacked: List[TaxBracket] = []
    for b in bottom:
        if b.start < pivot:
            stacked.append(TaxBracket(start=b.start, end=min(pivot, b.ceiling), rate=b.rate))
    for b in top:
        start = max(pivot, b.start)
        if start >= b.ceiling:
            continue
        stacked.append(TaxBracket(start=start, end=b.end, rate=b.rate))
    return stacked
