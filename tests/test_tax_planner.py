"""Tests for tax_planner.py and tax_tables.py: full-year composition."""

import pytest

from bracket_algebra import append_deduction_to_bracket, merge_tax_brackets, stack_tax_brackets
from income_tax import brackets_to_rows, tax_amount
from portfolio import Portfolio, Position
from tax_planner import (
    TaxSummary,
    combined_brackets,
    ordinary_income_for_rate,
    plan_withdrawal,
    stacked_brackets,
    summarize,
    tax_curve,
    to_dataframe,
)
from tax_tables import CALIFORNIA, DEFAULT_SCHEDULES, FEDERAL, NORTH_CAROLINA, STATES

ORDINARY_INCOME = 50_500.00
CAPITAL_GAINS_INCOME = 10_000.00
AGI = ORDINARY_INCOME + CAPITAL_GAINS_INCOME


def test_federal_capital_gains_include_niit():
    assert brackets_to_rows(FEDERAL.capital_gains) == [
        (0, 41_675, 0.0),
        (41_675, 200_000, 0.15),
        (200_000, 459_750, 0.188),
        (459_750, None, 0.238),
    ]


def test_default_schedules():
    assert set(STATES) == {"California", "Arkansas", "Missouri", "North Carolina"}
    assert DEFAULT_SCHEDULES == [FEDERAL, CALIFORNIA]


def test_federal_tax_year():
    brackets = stacked_brackets(ORDINARY_INCOME, FEDERAL)
    assert tax_amount(AGI, brackets) == pytest.approx(5_181.75, abs=0.005)


def test_state_tax_year():
    brackets = stacked_brackets(ORDINARY_INCOME, CALIFORNIA)
    assert tax_amount(AGI, brackets) == pytest.approx(2_160.37, abs=0.005)


def test_combined_tax_year():
    brackets = combined_brackets(ORDINARY_INCOME, [FEDERAL, CALIFORNIA])
    assert tax_amount(AGI, brackets) == pytest.approx(7_342.12, abs=0.01)


def test_stacking_order_does_not_change_tax():
    """Merging per-authority stacks equals stacking merged income types."""
    ordinary_income = 300_000
    by_authority = combined_brackets(ordinary_income, [FEDERAL, CALIFORNIA])
    by_type = stack_tax_brackets(
        ordinary_income,
        merge_tax_brackets(
            append_deduction_to_bracket(FEDERAL.deduction, FEDERAL.income),
            append_deduction_to_bracket(CALIFORNIA.deduction, CALIFORNIA.income),
        ),
        merge_tax_brackets(
            append_deduction_to_bracket(FEDERAL.deduction, FEDERAL.capital_gains),
            append_deduction_to_bracket(CALIFORNIA.deduction, CALIFORNIA.capital_gains),
        ),
    )
    for agi in (100_000, 300_000, 350_000, 750_000):
        assert tax_amount(agi, by_type) == pytest.approx(tax_amount(agi, by_authority), abs=0.01)


def test_summarize():
    summary = summarize(ORDINARY_INCOME, CAPITAL_GAINS_INCOME)
    assert summary.agi == AGI
    assert summary.tax_by_authority == pytest.approx({"Federal": 5_181.75, "California": 2_160.37})
    assert summary.tax == pytest.approx(7_342.12, abs=0.01)
    assert summary.effective_rate == pytest.approx(7_342.12 / AGI, abs=0.0001)
    # top dollar is a federal 15% gain plus California's 8% gains tier
    assert summary.marginal_rate == pytest.approx(0.23)


def test_summarize_nothing():
    summary = summarize(0, 0, [NORTH_CAROLINA])
    assert summary.tax == 0
    assert summary.effective_rate == 0
    assert summary.tax_by_authority == {"North Carolina": 0}


def test_tax_curve_rises_with_income():
    rows = tax_curve(range(0, 200_001, 20_000), capital_gains_income=5_000)
    assert len(rows) == 11
    assert all(isinstance(row, TaxSummary) for row in rows)
    taxes = [row.tax for row in rows]
    assert taxes == sorted(taxes)
    assert rows[0].ordinary_income == 0
    assert rows[-1].agi == 205_000


def test_ordinary_income_for_rate():
    ordinary_income = ordinary_income_for_rate(0.20, 30_000)
    assert ordinary_income is not None
    assert summarize(ordinary_income, 30_000).effective_rate == 0.20


def test_ordinary_income_for_rate_out_of_reach():
    assert ordinary_income_for_rate(0.20, 30_000, estimated_max=20_000) is None


@pytest.fixture
def brokerage():
    return Portfolio([
        Position(value=10_000, gains=-2_000, shares=100),
        Position(value=10_000, gains=1_000, shares=50),
        Position(value=10_000, gains=8_000, shares=10),
    ])


def test_plan_withdrawal_gain_harvesting(brokerage):
    plan = plan_withdrawal(brokerage, 15_000, 1.0, 40_000)
    assert plan.withdrawal.value == 15_000
    assert plan.realized_gains == plan.withdrawal.gains
    assert plan.realized_gains > 0
    assert plan.tax_after > plan.tax_before
    assert plan.tax_on_gains == pytest.approx(plan.tax_after - plan.tax_before, abs=0.01)


def test_plan_withdrawal_loss_harvesting(brokerage):
    plan = plan_withdrawal(brokerage, 10_000, -1.0, 40_000)
    assert plan.realized_gains == -2_000
    assert plan.tax_on_gains == 0


def test_to_dataframe():
    pytest.importorskip("pandas")
    df = to_dataframe(tax_curve([0, 50_000, 100_000]))
    assert list(df["ordinary_income"]) == [0, 50_000, 100_000]
    assert "effective_rate" in df.columns


def test_to_dataframe_from_withdrawal(brokerage):
    pytest.importorskip("pandas")
    withdrawal = brokerage.withdraw(5_000, 0.0)
    df = to_dataframe(withdrawal.to_rows())
    assert df["value"].sum() == pytest.approx(5_000)
