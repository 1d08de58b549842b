"""Income tax bracket utilities.

A bracket table is an ordered list of tiers like:
    [TaxBracket(start=0, end=10000, rate=0.0),
     TaxBracket(start=10000, end=25000, rate=0.10),
     TaxBracket(start=25000, end=None, rate=0.20)]

`end` is an absolute upper bound matching the next tier's `start`; only the
last tier may leave it open. Tables are treated as values: nothing in this
module (or in bracket_algebra) mutates a table it is given.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

# Stand-in for an open upper bound whenever arithmetic needs a number.
UNBOUNDED_CEILING = 2 ** 40


class BracketError(ValueError):
    """Raised for a malformed bracket table."""


@dataclass(frozen=True)
class TaxBracket:
    start: float
    end: Optional[float]  # None means no upper bound
    rate: float           # e.g., 0.22 for 22%; merged tables can exceed 1.0

    @property
    def ceiling(self) -> float:
        return UNBOUNDED_CEILING if self.end is None else self.end


def validate_brackets(brackets: Sequence[TaxBracket]) -> None:
    """Check ordering and contiguity, raising BracketError on the first problem."""
    for i, b in enumerate(brackets):
        if b.end is not None and b.end <= b.start:
            raise BracketError(f"tier {i} ends at {b.end}, not above its start {b.start}")
        if b.end is None and i != len(brackets) - 1:
            raise BracketError(f"tier {i} is unbounded but is not the last tier")
        if i == 0:
            continue
        prev = brackets[i - 1]
        if b.start <= prev.start:
            raise BracketError(f"tier {i} starts at {b.start}, not above {prev.start}")
        if b.start != prev.end:
            raise BracketError(f"tier {i} starts at {b.start} but tier {i - 1} ends at {prev.end}")


def brackets_from_rows(rows: Iterable[Sequence]) -> List[TaxBracket]:
    """Build a validated table from (start, end, rate) rows; end may be None."""
    brackets = [TaxBracket(start=start, end=end, rate=rate) for start, end, rate in rows]
    validate_brackets(brackets)
    return brackets


def brackets_to_rows(brackets: Sequence[TaxBracket]) -> List[tuple]:
    return [(b.start, b.end, b.rate) for b in brackets]


def rate_at(value: float, brackets: Sequence[TaxBracket]) -> float:
    """Marginal rate of the tier containing `value`, 0.0 outside every tier."""
    for b in brackets:
        if b.start <= value < b.ceiling:
            return b.rate
    return 0.0


def list_tax_totals(amount: float, brackets: Sequence[TaxBracket]) -> List[float]:
    """Tax contributed by each tier for `amount`, in tier order (unrounded)."""
    return [max(0.0, min(amount, b.ceiling) - b.start) * b.rate for b in brackets]


def tax_amount(amount: float, brackets: Sequence[TaxBracket]) -> float:
    """Compute tax owed under progressive brackets.

    Args:
        amount: income (or value) subject to the brackets.
        brackets: ordered low-to-high list of TaxBracket.

    Returns:
        Total tax in dollars, rounded to cents.
    """
    return round(sum(list_tax_totals(amount, brackets)), 2)


def tax_rate(amount: float, brackets: Sequence[TaxBracket]) -> float:
    """Effective (average) rate, rounded to 4 decimals. Defined as 0 at amount 0."""
    if amount == 0:
        return 0.0
    return round(tax_amount(amount, brackets) / amount, 4)


def tax_basis_foundation(rate: float, brackets: Sequence[TaxBracket]) -> float:
    """Principal plus tax consumed by every tier charging `rate` or less."""
    total = 0.0
    for b in brackets:
        if b.rate <= rate:
            total = total + (b.ceiling - b.start) * (1 + b.rate)
    return total


def tax_basis(total: float, brackets: Sequence[TaxBracket]) -> float:
    """Recover the pre-tax principal whose principal + tax equals `total`.

    The tier that holds the answer is the first one whose foundation reaches
    `total` while the foundation at the previous tier's rate does not. Inside
    that tier every extra dollar of principal costs (1 + rate). A total that
    never leaves the untaxed zone maps to itself.
    """
    basis = total
    for i, b in enumerate(brackets):
        if tax_basis_foundation(b.rate, brackets) < total:
            continue
        prev_rate = 0.0 if i == 0 else brackets[i - 1].rate
        prev_foundation = tax_basis_foundation(prev_rate, brackets)
        if prev_foundation < total:
            basis = b.start + (total - prev_foundation) / (1 + b.rate)
            break
    return round(basis, 2)

