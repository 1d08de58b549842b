"""Bisection search and the rate inversions built on it.

`binary_search` works with a comparator rather than a target value:

    compare(guess) < 0   -> guess is too low
    compare(guess) == 0  -> guess is acceptable
    compare(guess) > 0   -> guess is too high

A search that cannot land on an acceptable guess returns None, so that a
legitimate answer of -1 (or 0) is never confused with "not found".
"""
import logging
import math
from typing import Callable, List, Optional

from bracket_algebra import stack_tax_brackets
from income_tax import TaxBracket, tax_amount, tax_rate

logger = logging.getLogger(__name__)

Comparator = Callable[[float], int]

DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_ESTIMATED_MAX = 500_000


def binary_search(
    low: float,
    high: float,
    compare: Comparator,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Optional[float]:
    """Bisect [low, high] until `compare` accepts a midpoint.

    Midpoints are `ceil(low + high) / 2`, so the search resolves to half
    units; use decimal_binary_search for finer steps.
    """
    if low > high:
        return None
    for _ in range(max_iterations):
        mid = math.ceil(low + high) / 2
        verdict = compare(mid)
        if verdict == 0:
            return mid
        if verdict > 0:
            next_low, next_high = low, mid
        else:
            next_low, next_high = mid, high
        if (next_low, next_high) == (low, high):
            logger.debug("search stalled at %s in [%s, %s]", mid, low, high)
            return None
        low, high = next_low, next_high
    logger.warning("search exhausted %d iterations in [%s, %s]", max_iterations, low, high)
    return None


def decimal_binary_search(
    decimals: int,
    low: float,
    high: float,
    compare: Comparator,
) -> Optional[float]:
    magnitude = 10 ** decimals
    found = binary_search(low * magnitude, high * magnitude, lambda value: compare(value / magnitude))
    if found is None:
        return None
    return found / magnitude


def amount_by_rate(target_rate: float, brackets: List[TaxBracket]) -> Optional[float]:
    """Amount whose effective rate under `brackets` is exactly `target_rate`.

    Effective rates only grow with the amount, so the answer sits in the one
    tier whose effective rate at its start is below the target and at its end
    is at or above it. Inside that tier

        tax(start) + rate * (amount - start) == target_rate * amount

    which solves linearly. A tier starting at 0 charges its own rate on every
    amount inside it, so it only answers a target equal to that rate, and
    then with its top amount. Returns None when no amount reaches the target.
    """
    if target_rate <= 0:
        return 0.0
    for b in reversed(brackets):
        if b.start == 0:
            if target_rate == b.rate:
                return b.ceiling
            continue
        if target_rate == b.rate:
            continue
        lower_rate = tax_amount(b.start, brackets) / b.start
        if b.end is None:
            reachable = target_rate < b.rate
        else:
            reachable = target_rate <= tax_amount(b.end, brackets) / b.end
        if lower_rate < target_rate and reachable:
            return (tax_amount(b.start, brackets) - b.rate * b.start) / (target_rate - b.rate)
    return None


def _stacked_rate_comparator(
    target_rate: float,
    capital_gains_income: float,
    income_brackets: List[TaxBracket],
    capital_gains_brackets: List[TaxBracket],
) -> Comparator:
    def compare(ordinary_income_guess: float) -> int:
        brackets = stack_tax_brackets(ordinary_income_guess, income_brackets, capital_gains_brackets)
        guess_rate = tax_rate(ordinary_income_guess + capital_gains_income, brackets)
        if guess_rate > target_rate:
            return 1
        if guess_rate < target_rate:
            return -1
        return 0

    return compare


def amount_by_rate_with_stacked_tax(
    target_rate: float,
    capital_gains_income: float,
    income_brackets: List[TaxBracket],
    capital_gains_brackets: List[TaxBracket],
) -> Optional[float]:
    """Ordinary income that brings the combined effective rate to `target_rate`.

    Capital gains are stacked on top of the guessed ordinary income, so the
    schedule itself moves with every guess. The target is matched at 4
    decimals, the precision tax_rate reports.
    """
    compare = _stacked_rate_comparator(
        round(target_rate, 4), capital_gains_income, income_brackets, capital_gains_brackets
    )
    return binary_search(0, DEFAULT_ESTIMATED_MAX, compare)


def complex_amount_by_rate(
    target_rate: float,
    capital_gains_income: float,
    income_brackets: List[TaxBracket],
    capital_gains_brackets: List[TaxBracket],
    estimated_max: float = DEFAULT_ESTIMATED_MAX,
) -> Optional[float]:
    """Like amount_by_rate_with_stacked_tax, with a caller-chosen search ceiling.

    The target is compared as given; pass a rate with at most 4 decimals or
    the search cannot match it.
    """
    compare = _stacked_rate_comparator(
        target_rate, capital_gains_income, income_brackets, capital_gains_brackets
    )
    found = binary_search(0, estimated_max, compare)
    if found is None:
        logger.debug(
            "no ordinary income up to %s reaches %s with %s of capital gains",
            estimated_max, target_rate, capital_gains_income,
        )
    return found
