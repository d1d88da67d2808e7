from __future__ import annotations
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional

from dealflow.scenarios.assumptions import DealFinancials, ScenarioAssumptions
from dealflow.scenarios.engine import ScenarioResult
from dealflow.store.codec import from_decimal_str, to_decimal_str

DEAL_STATUSES = (
    "monitoring", "warm", "active", "offer_stage",
    "due_diligence", "closed_won", "closed_lost", "on_hold",
)
# Statuses counted as live pipeline on the dashboard
ACTIVE_STATUSES = ("warm", "active", "offer_stage", "due_diligence")
CONVICTIONS = ("low", "medium", "high", "very_high")
RELATIONSHIP_TYPES = ("owner", "executive", "advisor", "banker", "lawyer", "agent", "other")
RELATIONSHIP_STRENGTHS = ("weak", "moderate", "strong", "very_strong")
ACTIVITY_TYPES = ("meeting", "call", "email", "note", "research", "other")
INTELLIGENCE_TYPES = (
    "financial_data", "news", "ownership_change", "management_change",
    "media_rights", "sponsorship", "transfer_activity", "other",
)
RELEVANCE_LEVELS = ("low", "medium", "high")


class RecordNotFound(LookupError):
    """Missing record, or one that belongs to another user."""


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Deal(_Record):
    id: int
    user_id: int
    name: str
    league: Optional[str] = None
    country: Optional[str] = None
    sport: str = "football"
    status: str = "monitoring"
    conviction: Optional[str] = "medium"
    priority: Optional[int] = 3  # 1-5, 5 highest
    # Financials in millions, decimal strings
    current_valuation: Optional[str] = None
    revenue: Optional[str] = None
    ebitda: Optional[str] = None
    debt: Optional[str] = None
    current_owner: Optional[str] = None
    ownership_structure: Optional[str] = None
    minority_stake_available: bool = False
    target_stake_percentage: Optional[str] = None
    media_rights_expiry: Optional[str] = None
    last_contact_date: Optional[str] = None
    next_follow_up_date: Optional[str] = None
    investment_thesis: Optional[str] = None
    key_risks: Optional[str] = None
    value_creation_opportunities: Optional[str] = None
    private_notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def financials(self) -> DealFinancials:
        return DealFinancials(
            revenue=from_decimal_str(self.revenue),
            ebitda=from_decimal_str(self.ebitda),
            debt=from_decimal_str(self.debt),
        )


@dataclass
class Contact(_Record):
    id: int
    user_id: int
    name: str
    title: Optional[str] = None
    organization: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    relationship_type: Optional[str] = None
    relationship_strength: Optional[str] = "moderate"
    relevant_to_deals: Optional[str] = None
    expertise: Optional[str] = None
    notes: Optional[str] = None
    last_contact_date: Optional[str] = None
    next_follow_up_date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Activity(_Record):
    id: int
    user_id: int
    type: str
    activity_date: str
    deal_id: Optional[int] = None
    contact_id: Optional[int] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    outcome: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Intelligence(_Record):
    id: int
    user_id: int
    type: str
    title: str
    intelligence_date: str
    deal_id: Optional[int] = None
    content: Optional[str] = None
    source_url: Optional[str] = None
    source_type: Optional[str] = None
    relevance: Optional[str] = "medium"
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Scenario(_Record):
    """Saved assumptions plus the result computed from them.

    Every numeric field is a decimal string; exit_year stays an int.
    """

    id: int
    deal_id: int
    user_id: int
    name: str
    entry_valuation: str
    stake_percentage: str
    investment_amount: str
    exit_multiple: str
    debt_percentage: str = "0"
    revenue_growth_rate: str = "5"
    ebitda_margin_improvement: str = "0"
    exit_year: int = 5
    entry_multiple: Optional[str] = None
    description: Optional[str] = None
    exit_valuation: Optional[str] = None
    exit_equity_value: Optional[str] = None
    total_return: Optional[str] = None
    irr: Optional[str] = None
    moic: Optional[str] = None
    cash_on_cash: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def build(
        cls,
        id: int,
        deal_id: int,
        user_id: int,
        assumptions: ScenarioAssumptions,
        result: ScenarioResult,
        created_at: str = "",
    ) -> "Scenario":
        return cls(
            id=id,
            deal_id=deal_id,
            user_id=user_id,
            name=assumptions.name,
            description=assumptions.description,
            entry_valuation=to_decimal_str(assumptions.entry_valuation),
            entry_multiple=to_decimal_str(assumptions.entry_multiple),
            stake_percentage=to_decimal_str(assumptions.stake_percentage),
            debt_percentage=to_decimal_str(assumptions.debt_percentage),
            revenue_growth_rate=to_decimal_str(assumptions.revenue_growth_rate),
            ebitda_margin_improvement=to_decimal_str(assumptions.ebitda_margin_improvement),
            exit_year=int(assumptions.exit_year),
            exit_multiple=to_decimal_str(assumptions.exit_multiple),
            investment_amount=to_decimal_str(result.investment_amount),
            exit_valuation=to_decimal_str(result.exit_valuation),
            exit_equity_value=to_decimal_str(result.exit_equity_value),
            total_return=to_decimal_str(result.total_return),
            irr=to_decimal_str(result.irr),
            moic=to_decimal_str(result.moic),
            cash_on_cash=to_decimal_str(result.cash_on_cash),
            created_at=created_at,
            updated_at=created_at,
        )

    def assumptions(self) -> ScenarioAssumptions:
        return ScenarioAssumptions(
            name=self.name,
            description=self.description,
            entry_valuation=from_decimal_str(self.entry_valuation),
            entry_multiple=from_decimal_str(self.entry_multiple),
            stake_percentage=from_decimal_str(self.stake_percentage),
            debt_percentage=from_decimal_str(self.debt_percentage) or 0.0,
            revenue_growth_rate=from_decimal_str(self.revenue_growth_rate) or 0.0,
            ebitda_margin_improvement=from_decimal_str(self.ebitda_margin_improvement) or 0.0,
            exit_year=int(self.exit_year),
            exit_multiple=from_decimal_str(self.exit_multiple),
        )

    def result(self) -> ScenarioResult:
        return ScenarioResult(
            investment_amount=from_decimal_str(self.investment_amount) or 0.0,
            exit_valuation=from_decimal_str(self.exit_valuation) or 0.0,
            exit_equity_value=from_decimal_str(self.exit_equity_value) or 0.0,
            total_return=from_decimal_str(self.total_return) or 0.0,
            irr=from_decimal_str(self.irr) or 0.0,
            moic=from_decimal_str(self.moic) or 0.0,
            cash_on_cash=from_decimal_str(self.cash_on_cash) or 0.0,
        )
