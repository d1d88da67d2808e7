from __future__ import annotations
from dataclasses import dataclass, replace
import math
from typing import Any, Dict, Optional

from dealflow.scenarios.assumptions import DealFinancials, ScenarioAssumptions
from dealflow.scenarios.engine import ScenarioResult, compute_scenario


def default_exit_multiple(financials: DealFinancials, entry_valuation: float) -> Optional[float]:
    """Entry EV/EBITDA, used as the starting guess for the exit multiple.

    None when the deal has no positive EBITDA.
    """
    if financials.ebitda is None or financials.ebitda <= 0:
        return None
    return float(entry_valuation) / float(financials.ebitda)


EDITABLE_FIELDS = (
    "name",
    "description",
    "entry_valuation",
    "stake_percentage",
    "debt_percentage",
    "revenue_growth_rate",
    "ebitda_margin_improvement",
    "exit_year",
    "exit_multiple",
)


def _coerce(field_name: str, value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValueError(f"{field_name} must be a finite number")
    if field_name == "exit_year":
        if number != int(number):
            raise ValueError("exit_year must be a whole number of years")
        return int(number)
    return number


@dataclass
class ScenarioDraft:
    """Unsaved scenario being edited interactively against one deal.

    The exit multiple starts at the entry multiple the first time the draft
    is computed. Once the user types their own exit multiple it is never
    recomputed from valuation changes; entry_multiple keeps tracking the
    valuation independently.
    """

    financials: DealFinancials
    assumptions: ScenarioAssumptions
    exit_multiple_overridden: bool = False
    _defaulted: bool = False

    @classmethod
    def start(
        cls,
        financials: DealFinancials,
        entry_valuation: float = 500.0,
        stake_percentage: float = 15.0,
        name: str = "Base Case",
    ) -> "ScenarioDraft":
        a = ScenarioAssumptions(
            name=name,
            entry_valuation=float(entry_valuation),
            stake_percentage=float(stake_percentage),
            exit_multiple=0.0,
            entry_multiple=default_exit_multiple(financials, entry_valuation),
        )
        return cls(financials=financials, assumptions=a)

    def edit(self, field_name: str, value: Any) -> None:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"unknown scenario field: {field_name}")
        if field_name not in ("name", "description"):
            value = _coerce(field_name, value)
        updates: Dict[str, Any] = {field_name: value}
        if field_name == "entry_valuation":
            updates["entry_multiple"] = default_exit_multiple(self.financials, value)
        if field_name == "exit_multiple":
            self.exit_multiple_overridden = True
        self.assumptions = replace(self.assumptions, **updates)

    def apply(self, edits: Dict[str, Any]) -> ScenarioResult:
        """Apply a batch of edits all-or-nothing and return the new result.

        Raises ValueError, leaving the draft untouched, when any edit is
        rejected or the edited assumptions overflow.
        """
        trial = replace(self)
        for field_name, value in edits.items():
            trial.edit(field_name, value)
        result = trial.compute()
        if not result.is_finite():
            raise ValueError("assumptions produce a result too large to represent")
        self.assumptions = trial.assumptions
        self.exit_multiple_overridden = trial.exit_multiple_overridden
        self._defaulted = trial._defaulted
        return result

    def compute(self) -> ScenarioResult:
        if not self._defaulted:
            self._defaulted = True
            if not self.exit_multiple_overridden:
                derived = default_exit_multiple(self.financials, self.assumptions.entry_valuation)
                if derived is not None:
                    self.assumptions = replace(self.assumptions, exit_multiple=derived)
        return compute_scenario(self.financials, self.assumptions)
