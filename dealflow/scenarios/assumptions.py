from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DealFinancials:
    # Trailing figures in millions; any of them may be unknown
    revenue: Optional[float] = None
    ebitda: Optional[float] = None
    debt: Optional[float] = None  # net debt

    @property
    def revenue_or_zero(self) -> float:
        return float(self.revenue) if self.revenue is not None else 0.0

    @property
    def ebitda_or_zero(self) -> float:
        return float(self.ebitda) if self.ebitda is not None else 0.0

    @property
    def debt_or_zero(self) -> float:
        return float(self.debt) if self.debt is not None else 0.0


@dataclass(frozen=True)
class ScenarioAssumptions:
    name: str
    entry_valuation: float           # enterprise value at entry, millions
    stake_percentage: float          # 15.0 = 15%
    exit_multiple: float             # EV/EBITDA at exit
    debt_percentage: float = 0.0     # share of the investment financed by debt
    revenue_growth_rate: float = 5.0  # annual %, compounded
    ebitda_margin_improvement: float = 0.0  # percentage points, additive
    exit_year: int = 5
    entry_multiple: Optional[float] = None  # informational only
    description: Optional[str] = None


def validate_assumptions(a: ScenarioAssumptions) -> None:
    """Input guardrails for user-authored assumptions.

    The engine itself accepts anything numeric; these checks belong to the
    request boundary and raise ValueError with a message fit for the client.
    """
    if not a.name or not a.name.strip():
        raise ValueError("scenario name is required")
    if not a.entry_valuation > 0:
        raise ValueError("entry valuation must be positive")
    if not (0.0 < a.stake_percentage <= 100.0):
        raise ValueError("stake percentage must be greater than 0 and at most 100")
    if not (0.0 <= a.debt_percentage <= 100.0):
        raise ValueError("debt percentage must be between 0 and 100")
    if isinstance(a.exit_year, bool) or not isinstance(a.exit_year, int) or a.exit_year <= 0:
        raise ValueError("exit year must be a positive integer")
    if not a.exit_multiple > 0:
        raise ValueError("exit multiple must be positive")
