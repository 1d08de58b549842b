"""Portfolio positions and gain-ratio aware withdrawals.

A position's ratio is gains / value: 1.0 means the whole sale is taxable
gain, 0.0 means it is all basis, negative values are losses. Withdrawing
with a desired ratio picks positions (and finally a partial position) so the
cash raised hits the requested amount while the realized ratio of the whole
withdrawal lands as close as possible to the desired one. That is what
tax-gain harvesting (desired ratio near 1.0) and tax-loss harvesting
(desired ratio near -1.0) need.

Amounts, gains and ratios are kept to 3 decimals throughout.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

NEGATIVE = "negative"
POSITIVE = "positive"


class InsufficientFundsError(ValueError):
    """Raised when a withdrawal asks for more than the portfolio holds."""


def three_decimals(value: float) -> float:
    return round(value, 3)


def _ratio(gains: float, value: float) -> float:
    if value == 0:
        return 0.0
    return three_decimals(gains / value)


@dataclass(frozen=True)
class Position:
    value: float
    gains: float        # gain realized if the whole position were sold
    shares: float
    ratio: float = field(init=False, compare=False)

    def __post_init__(self):
        # taken from the amounts as given, before they are rounded
        object.__setattr__(self, "ratio", _ratio(self.gains, self.value))
        object.__setattr__(self, "value", three_decimals(self.value))
        object.__setattr__(self, "gains", three_decimals(self.gains))
        object.__setattr__(self, "shares", three_decimals(self.shares))
        if self.value != 0 and self.shares <= 0:
            raise ValueError(f"position worth {self.value} needs a positive share count, got {self.shares}")

    @classmethod
    def from_record(
        cls,
        record: Mapping,
        on_ratio: Optional[Callable[[float], None]] = None,
    ) -> "Position":
        """Build a position from a holding record with value, gains and shares.

        The record is left untouched. Callers that keep the ratio on their own
        records pass `on_ratio`, which receives the computed ratio once.
        """
        position = cls(
            value=record["value"],
            gains=record["gains"],
            shares=record["shares"],
        )
        if on_ratio is not None:
            on_ratio(position.ratio)
        return position

    def partial_value(self, shares: float) -> float:
        """Value of `shares` shares of this position."""
        return three_decimals(self.value / self.shares * shares)

    def partial_gains(self, shares: float) -> float:
        """Gains realized by selling `shares` shares of this position."""
        return three_decimals(self.gains / self.shares * shares)

    def shares_for_value(self, amount: float) -> float:
        return amount / (self.value / self.shares)


@dataclass
class Withdrawal:
    """Positions (or parts of positions) taken so far toward a target amount."""

    target_amount: float = 0.0
    legs: List[Tuple[Position, float]] = field(default_factory=list)

    def add(self, position: Position, shares: Optional[float] = None) -> None:
        """Take `shares` of `position`, or all of it when shares is None."""
        self.legs.append((position, position.shares if shares is None else shares))

    @property
    def value(self) -> float:
        return three_decimals(sum(p.partial_value(s) for p, s in self.legs))

    @property
    def gains(self) -> float:
        return three_decimals(sum(p.partial_gains(s) for p, s in self.legs))

    @property
    def ratio(self) -> float:
        return _ratio(self.gains, self.value)

    @property
    def remaining(self) -> float:
        return self.target_amount - self.value

    def ratio_with(self, candidate: Optional[Position]) -> float:
        """Ratio this withdrawal would have after also taking all of `candidate`."""
        if candidate is None:
            return self.ratio
        return _ratio(self.gains + candidate.gains, self.value + candidate.value)

    def to_rows(self) -> List[dict]:
        return [
            {
                "shares": shares,
                "value": position.partial_value(shares),
                "gains": position.partial_gains(shares),
                "ratio": position.ratio,
            }
            for position, shares in self.legs
        ]


def _by_distance(positions: List[Position], desired_ratio: float) -> List[Position]:
    return sorted(positions, key=lambda p: abs(desired_ratio - p.ratio))


class CandidatePools:
    """Two distance-sorted pools split at the desired ratio, each with a cursor."""

    def __init__(self, positions: List[Position], desired_ratio: float):
        self.pools = {
            NEGATIVE: _by_distance([p for p in positions if p.ratio < desired_ratio], desired_ratio),
            POSITIVE: _by_distance([p for p in positions if p.ratio >= desired_ratio], desired_ratio),
        }
        self.cursors = {NEGATIVE: 0, POSITIVE: 0}

    def peek(self, side: str) -> Optional[Position]:
        pool = self.pools[side]
        cursor = self.cursors[side]
        return pool[cursor] if cursor < len(pool) else None

    def advance(self, side: str) -> Position:
        candidate = self.peek(side)
        if candidate is None:
            raise IndexError(f"{side} pool is exhausted")
        self.cursors[side] += 1
        return candidate

    @property
    def exhausted(self) -> bool:
        return self.peek(NEGATIVE) is None and self.peek(POSITIVE) is None


def choose_side(
    withdrawal: Withdrawal,
    desired_ratio: float,
    negative: Optional[Position],
    positive: Optional[Position],
) -> Optional[str]:
    """Pick the pool whose next candidate moves the withdrawal ratio closest
    to `desired_ratio`. Ties go to the negative pool; an empty pool always
    yields to the other one. None when both are empty.
    """
    if negative is None and positive is None:
        return None
    if negative is None:
        return POSITIVE
    if positive is None:
        return NEGATIVE
    negative_distance = abs(desired_ratio - withdrawal.ratio_with(negative))
    positive_distance = abs(desired_ratio - withdrawal.ratio_with(positive))
    return NEGATIVE if negative_distance <= positive_distance else POSITIVE


@dataclass
class Portfolio:
    positions: List[Position] = field(default_factory=list)

    @property
    def value(self) -> float:
        return three_decimals(sum(p.value for p in self.positions))

    @property
    def gains(self) -> float:
        return three_decimals(sum(p.gains for p in self.positions))

    @property
    def ratio(self) -> float:
        return _ratio(self.gains, self.value)

    def sort_by_distance(self, desired_ratio: float = 0.0) -> List[Position]:
        """Positions ordered by how far their ratio is from `desired_ratio`."""
        return _by_distance(self.positions, desired_ratio)

    def withdraw(self, amount: float, desired_ratio: float = 0.0) -> Withdrawal:
        """Raise `amount` while steering the realized ratio toward `desired_ratio`.

        Sorting the whole portfolio by distance is not enough once holdings sit
        on both sides of the desired ratio: draining one side first overshoots.
        Instead the closest remaining candidate from each side is tried, and
        the one that leaves the running ratio nearer the target is taken.
        """
        if amount > self.value:
            raise InsufficientFundsError(
                f"withdrawal of {amount} exceeds portfolio value {self.value}"
            )

        pools = CandidatePools(self.positions, desired_ratio)
        withdrawal = Withdrawal(target_amount=amount)
        while withdrawal.remaining > 0 and not pools.exhausted:
            side = choose_side(withdrawal, desired_ratio, pools.peek(NEGATIVE), pools.peek(POSITIVE))
            candidate = pools.advance(side)
            remaining = withdrawal.remaining
            if remaining > candidate.value:
                withdrawal.add(candidate)
            else:
                withdrawal.add(candidate, candidate.shares_for_value(remaining))
            logger.debug(
                "took %s from %s pool (ratio %s), withdrawal at %s / %s ratio %s",
                min(remaining, candidate.value), side, candidate.ratio,
                withdrawal.value, amount, withdrawal.ratio,
            )
        return withdrawal
