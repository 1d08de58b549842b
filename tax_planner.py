"""Tax-year planning across several taxing authorities.

Builds on the bracket algebra to answer the questions a withdrawal plan
needs:

- What is the combined federal + state tax for a mix of ordinary income and
  long-term capital gains? (`summarize`, `tax_curve`)
- How much ordinary income can be realized before the combined effective
  rate reaches a target? (`ordinary_income_for_rate`)
- If cash is raised from a brokerage portfolio at a chosen gain ratio, how
  much tax do the realized gains add? (`plan_withdrawal`)

Key simplifying assumptions:

- Each authority applies its standard deduction to both of its tables, as a
  widened 0% tier.
- Capital gains are stacked on top of ordinary income within each authority
  and authorities are summed; summing stacked tables per authority and
  stacking summed tables per income type give the same tax.
- Net realized losses are not deducted from ordinary income; they only
  zero out the capital gains for the year.
"""
import logging
from dataclasses import asdict, dataclass, field
from functools import reduce
from typing import Dict, Iterable, List, Optional

from bracket_algebra import append_deduction_to_bracket, merge_tax_brackets, stack_tax_brackets
from income_tax import TaxBracket, rate_at, tax_amount, tax_rate
from portfolio import Portfolio, Withdrawal
from rate_search import DEFAULT_ESTIMATED_MAX, complex_amount_by_rate
from tax_tables import DEFAULT_SCHEDULES, TaxSchedule

logger = logging.getLogger(__name__)


@dataclass
class TaxSummary:
    ordinary_income: float
    capital_gains_income: float
    agi: float
    tax: float
    effective_rate: float
    marginal_rate: float
    tax_by_authority: Dict[str, float] = field(default_factory=dict)


@dataclass
class WithdrawalPlan:
    withdrawal: Withdrawal
    realized_gains: float
    tax_before: float
    tax_after: float

    @property
    def tax_on_gains(self) -> float:
        return round(self.tax_after - self.tax_before, 2)


def stacked_brackets(ordinary_income: float, schedule: TaxSchedule) -> List[TaxBracket]:
    """One authority's table with its capital gains stacked on ordinary income."""
    return stack_tax_brackets(
        ordinary_income,
        append_deduction_to_bracket(schedule.deduction, schedule.income),
        append_deduction_to_bracket(schedule.deduction, schedule.capital_gains),
    )


def _merge_all(tables: Iterable[List[TaxBracket]]) -> List[TaxBracket]:
    return reduce(merge_tax_brackets, tables)


def combined_brackets(
    ordinary_income: float,
    schedules: Optional[List[TaxSchedule]] = None,
) -> List[TaxBracket]:
    schedules = schedules or DEFAULT_SCHEDULES
    return _merge_all(stacked_brackets(ordinary_income, s) for s in schedules)


def summarize(
    ordinary_income: float,
    capital_gains_income: float = 0.0,
    schedules: Optional[List[TaxSchedule]] = None,
) -> TaxSummary:
    schedules = schedules or DEFAULT_SCHEDULES
    agi = ordinary_income + capital_gains_income
    by_authority = {
        s.name: tax_amount(agi, stacked_brackets(ordinary_income, s)) for s in schedules
    }
    combined = combined_brackets(ordinary_income, schedules)
    return TaxSummary(
        ordinary_income=round(ordinary_income, 2),
        capital_gains_income=round(capital_gains_income, 2),
        agi=round(agi, 2),
        tax=tax_amount(agi, combined),
        effective_rate=tax_rate(agi, combined),
        marginal_rate=rate_at(agi, combined),
        tax_by_authority=by_authority,
    )


def tax_curve(
    incomes: Iterable[float],
    capital_gains_income: float = 0.0,
    schedules: Optional[List[TaxSchedule]] = None,
) -> List[TaxSummary]:
    """Summaries over a range of ordinary incomes, e.g. range(0, 500_001, 5_000)."""
    return [summarize(income, capital_gains_income, schedules) for income in incomes]


def ordinary_income_for_rate(
    target_rate: float,
    capital_gains_income: float,
    schedules: Optional[List[TaxSchedule]] = None,
    estimated_max: float = DEFAULT_ESTIMATED_MAX,
) -> Optional[float]:
    """Ordinary income that, with the given gains, yields `target_rate` overall.

    Returns None when no income up to `estimated_max` gets there.
    """
    schedules = schedules or DEFAULT_SCHEDULES
    income = _merge_all(append_deduction_to_bracket(s.deduction, s.income) for s in schedules)
    gains = _merge_all(append_deduction_to_bracket(s.deduction, s.capital_gains) for s in schedules)
    return complex_amount_by_rate(target_rate, capital_gains_income, income, gains, estimated_max)


def plan_withdrawal(
    portfolio: Portfolio,
    amount: float,
    desired_ratio: float,
    ordinary_income: float,
    schedules: Optional[List[TaxSchedule]] = None,
) -> WithdrawalPlan:
    """Withdraw `amount` at `desired_ratio` and price the gains it realizes."""
    withdrawal = portfolio.withdraw(amount, desired_ratio)
    realized = withdrawal.gains
    before = summarize(ordinary_income, 0.0, schedules)
    after = summarize(ordinary_income, max(0.0, realized), schedules)
    logger.debug(
        "withdrew %s at ratio %s, realized %s, tax %s -> %s",
        withdrawal.value, withdrawal.ratio, realized, before.tax, after.tax,
    )
    return WithdrawalPlan(
        withdrawal=withdrawal,
        realized_gains=realized,
        tax_before=before.tax,
        tax_after=after.tax,
    )


def to_dataframe(rows: list):
    try:
        import pandas as pd
    except Exception:
        raise RuntimeError("pandas is required to build a DataFrame output")
    return pd.DataFrame([asdict(r) if not isinstance(r, dict) else r for r in rows])
