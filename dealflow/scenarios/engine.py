from __future__ import annotations
from dataclasses import dataclass, asdict
import math
from typing import Dict

from dealflow.scenarios.assumptions import DealFinancials, ScenarioAssumptions

# IRR reported when the fund gets nothing (or less than nothing) back
TOTAL_LOSS_IRR = -100.0


@dataclass(frozen=True)
class ScenarioResult:
    investment_amount: float
    exit_valuation: float
    exit_equity_value: float
    total_return: float
    irr: float          # % per year
    moic: float         # x
    cash_on_cash: float  # %

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in asdict(self).values())


def _compound(rate_pct: float, years: int) -> float:
    base = 1.0 + rate_pct / 100.0
    try:
        return base ** years
    except (OverflowError, ZeroDivisionError):
        return math.copysign(math.inf, base) if years % 2 else math.inf


def compute_scenario(financials: DealFinancials, assumptions: ScenarioAssumptions) -> ScenarioResult:
    """Project exit economics and fund returns for one set of assumptions.

    Pipeline:
    - margin today from trailing revenue/EBITDA, then revenue compounded over
      the holding period and the margin shifted by the improvement (pp)
    - exit EV = future EBITDA x exit multiple; equity = EV - current net debt
      (no paydown schedule)
    - the fund invests stake% of entry valuation, debt% of it borrowed
    - MOIC/IRR on the equity cheque, cash-on-cash on the full investment

    Zero divisors short-circuit to 0. IRR is the single-in/single-out CAGR and
    falls to TOTAL_LOSS_IRR when MOIC <= 0. Growth that overflows a float
    compounds to inf instead of raising; callers check is_finite().
    """
    revenue = financials.revenue_or_zero
    ebitda = financials.ebitda_or_zero

    current_margin = (ebitda / revenue) * 100.0 if revenue > 0 else 0.0
    future_revenue = revenue * _compound(assumptions.revenue_growth_rate, assumptions.exit_year)
    future_margin = current_margin + assumptions.ebitda_margin_improvement
    future_ebitda = future_revenue * future_margin / 100.0

    exit_valuation = future_ebitda * assumptions.exit_multiple
    exit_equity_value = exit_valuation - financials.debt_or_zero

    investment_amount = assumptions.entry_valuation * assumptions.stake_percentage / 100.0
    equity_invested = investment_amount * (1.0 - assumptions.debt_percentage / 100.0)
    exit_proceeds = exit_equity_value * assumptions.stake_percentage / 100.0
    total_return = exit_proceeds - equity_invested

    moic = exit_proceeds / equity_invested if equity_invested > 0 else 0.0

    if equity_invested > 0 and assumptions.exit_year > 0:
        if moic > 0:
            irr = (moic ** (1.0 / assumptions.exit_year) - 1.0) * 100.0
        else:
            irr = TOTAL_LOSS_IRR
    else:
        irr = 0.0

    cash_on_cash = (total_return / investment_amount) * 100.0 if investment_amount > 0 else 0.0

    return ScenarioResult(
        investment_amount=float(investment_amount),
        exit_valuation=float(exit_valuation),
        exit_equity_value=float(exit_equity_value),
        total_return=float(total_return),
        irr=float(irr),
        moic=float(moic),
        cash_on_cash=float(cash_on_cash),
    )
