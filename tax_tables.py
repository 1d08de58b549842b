"""Default 2022 single-filer bracket tables.

Each taxing authority is a TaxSchedule: a standard deduction plus one table
for ordinary income and one for long-term capital gains. All amounts are
nominal 2022 dollars; pass your own schedules to the planner for other
years or filing statuses.
"""
from dataclasses import dataclass
from typing import List

from bracket_algebra import merge_tax_brackets
from income_tax import TaxBracket, brackets_from_rows


@dataclass(frozen=True)
class TaxSchedule:
    name: str
    deduction: float
    income: List[TaxBracket]
    capital_gains: List[TaxBracket]


FEDERAL_INCOME: List[TaxBracket] = brackets_from_rows([
    (0, 10_275, 0.10),
    (10_275, 41_775, 0.12),
    (41_775, 89_075, 0.22),
    (89_075, 170_050, 0.24),
    (170_050, 215_950, 0.32),
    (215_950, 539_900, 0.35),
    (539_900, None, 0.37),
])

FEDERAL_CAPITAL_GAINS: List[TaxBracket] = brackets_from_rows([
    (0, 41_675, 0.00),
    (41_675, 459_750, 0.15),
    (459_750, None, 0.20),
])

# Net investment income tax, charged on top of long-term gains
FEDERAL_NIIT: List[TaxBracket] = brackets_from_rows([
    (0, 200_000, 0.000),
    (200_000, None, 0.038),
])

FEDERAL = TaxSchedule(
    name="Federal",
    deduction=12_950.0,
    income=FEDERAL_INCOME,
    capital_gains=merge_tax_brackets(FEDERAL_CAPITAL_GAINS, FEDERAL_NIIT),
)

CALIFORNIA = TaxSchedule(
    name="California",
    deduction=5_202.0,
    income=brackets_from_rows([
        (0, 10_099, 0.010),
        (10_099, 23_942, 0.020),
        (23_942, 37_788, 0.040),
        (37_788, 52_455, 0.060),
        (52_455, 66_295, 0.080),
        (66_295, 338_639, 0.093),
        (338_639, 406_364, 0.103),
        (406_364, 677_275, 0.113),
        (677_275, None, 0.123),
    ]),
    capital_gains=brackets_from_rows([
        (0, 8_932, 0.010),
        (8_932, 21_175, 0.020),
        (21_175, 33_421, 0.040),
        (33_421, 46_394, 0.060),
        (46_394, 58_634, 0.080),
        (58_634, 299_508, 0.093),
        (299_508, 359_407, 0.103),
        (359_407, 599_012, 0.113),
        (599_012, None, 0.123),
    ]),
)

ARKANSAS = TaxSchedule(
    name="Arkansas",
    deduction=2_200.0,
    income=brackets_from_rows([
        (0, 4_300, 0.020),
        (4_300, 8_500, 0.040),
        (8_500, None, 0.055),
    ]),
    capital_gains=brackets_from_rows([
        (0, 4_300, 0.0100),
        (4_300, 8_500, 0.0200),
        (8_500, None, 0.0275),
    ]),
)

_MISSOURI_ROWS = [
    (0, 111, 0.000),
    (111, 1_121, 0.015),
    (1_121, 2_242, 0.020),
    (2_242, 3_363, 0.025),
    (3_363, 4_484, 0.030),
    (4_484, 5_605, 0.035),
    (5_605, 6_726, 0.040),
    (6_726, 7_847, 0.045),
    (7_847, 8_968, 0.050),
    (8_968, None, 0.053),
]

# Missouri taxes gains as ordinary income
MISSOURI = TaxSchedule(
    name="Missouri",
    deduction=12_950.0,
    income=brackets_from_rows(_MISSOURI_ROWS),
    capital_gains=brackets_from_rows(_MISSOURI_ROWS),
)

NORTH_CAROLINA = TaxSchedule(
    name="North Carolina",
    deduction=12_750.0,
    income=brackets_from_rows([(0, None, 0.049)]),
    capital_gains=brackets_from_rows([(0, None, 0.049)]),
)

DEFAULT_SCHEDULES: List[TaxSchedule] = [FEDERAL, CALIFORNIA]

STATES = {s.name: s for s in (CALIFORNIA, ARKANSAS, MISSOURI, NORTH_CAROLINA)}
