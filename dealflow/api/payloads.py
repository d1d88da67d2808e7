"""
Request bodies -> store values. Clients may send camelCase (entryValuation)
or snake_case keys. Every parser raises ValueError with a client-facing
message; unknown keys are ignored.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import re

from dealflow.scenarios.assumptions import DealFinancials, ScenarioAssumptions, validate_assumptions
from dealflow.scenarios.draft import default_exit_multiple
from dealflow.store.codec import from_decimal_str, to_decimal_str
from dealflow.store.records import (
    ACTIVITY_TYPES, CONVICTIONS, DEAL_STATUSES, INTELLIGENCE_TYPES,
    RELATIONSHIP_STRENGTHS, RELATIONSHIP_TYPES, RELEVANCE_LEVELS,
)

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def snake_keys(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {_CAMEL.sub("_", k).lower(): v for k, v in (payload or {}).items()}


def _text(name: str, v: Any) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValueError(f"{name} must be a string")
    return v


def _decimal(name: str, v: Any) -> Optional[str]:
    try:
        return to_decimal_str(v)
    except (ValueError, TypeError):
        raise ValueError(f"{name} must be a valid number")


def _integer(name: str, v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str) and re.fullmatch(r"\s*-?\d+\s*", v):
        return int(v)
    raise ValueError(f"{name} must be an integer")


def _flag(name: str, v: Any) -> Optional[bool]:
    if v is None:
        return None
    if isinstance(v, bool):
        return v
    if v in (0, 1):
        return bool(v)
    raise ValueError(f"{name} must be a boolean")


def _date(name: str, v: Any) -> Optional[str]:
    if v is None or v == "":
        return None
    try:
        return datetime.fromisoformat(str(v).replace("Z", "+00:00")).isoformat()
    except ValueError:
        raise ValueError(f"{name} must be an ISO date")


def _choice(options) -> Callable[[str, Any], Optional[str]]:
    def parse(name: str, v: Any) -> Optional[str]:
        if v is None:
            return None
        if v not in options:
            raise ValueError(f"{name} must be one of: {', '.join(options)}")
        return v
    return parse


DEAL_FIELDS: Dict[str, Callable[[str, Any], Any]] = {
    "name": _text, "league": _text, "country": _text, "sport": _text,
    "status": _choice(DEAL_STATUSES), "conviction": _choice(CONVICTIONS),
    "priority": _integer,
    "current_valuation": _decimal, "revenue": _decimal, "ebitda": _decimal, "debt": _decimal,
    "current_owner": _text, "ownership_structure": _text,
    "minority_stake_available": _flag, "target_stake_percentage": _decimal,
    "media_rights_expiry": _date, "last_contact_date": _date, "next_follow_up_date": _date,
    "investment_thesis": _text, "key_risks": _text,
    "value_creation_opportunities": _text, "private_notes": _text,
}

CONTACT_FIELDS: Dict[str, Callable[[str, Any], Any]] = {
    "name": _text, "title": _text, "organization": _text, "email": _text, "phone": _text,
    "linkedin_url": _text,
    "relationship_type": _choice(RELATIONSHIP_TYPES),
    "relationship_strength": _choice(RELATIONSHIP_STRENGTHS),
    "relevant_to_deals": _text, "expertise": _text, "notes": _text,
    "last_contact_date": _date, "next_follow_up_date": _date,
}

ACTIVITY_FIELDS: Dict[str, Callable[[str, Any], Any]] = {
    "deal_id": _integer, "contact_id": _integer,
    "type": _choice(ACTIVITY_TYPES),
    "subject": _text, "description": _text, "outcome": _text,
    "activity_date": _date,
}

INTELLIGENCE_FIELDS: Dict[str, Callable[[str, Any], Any]] = {
    "deal_id": _integer,
    "type": _choice(INTELLIGENCE_TYPES),
    "title": _text, "content": _text, "source_url": _text, "source_type": _text,
    "relevance": _choice(RELEVANCE_LEVELS),
    "intelligence_date": _date,
}


def _collect(payload: Dict[str, Any], parsers: Dict[str, Callable[[str, Any], Any]]) -> Dict[str, Any]:
    data = snake_keys(payload)
    out: Dict[str, Any] = {}
    for name, parse in parsers.items():
        if name in data:
            out[name] = parse(name, data[name])
    return out


def _require(values: Dict[str, Any], *names: str) -> None:
    for n in names:
        v = values.get(n)
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError(f"{n} is required")


def deal_values(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    values = _collect(payload, DEAL_FIELDS)
    if not partial:
        _require(values, "name")
    elif "name" in values:
        _require(values, "name")
    if values.get("priority") is not None and not (1 <= values["priority"] <= 5):
        raise ValueError("priority must be between 1 and 5")
    stake = from_decimal_str(values.get("target_stake_percentage"))
    if stake is not None and not (0 <= stake <= 100):
        raise ValueError("target_stake_percentage must be between 0 and 100")
    rev = from_decimal_str(values.get("revenue"))
    if rev is not None and rev < 0:
        raise ValueError("revenue must not be negative")
    # Non-nullable columns keep their defaults when omitted or sent as null
    for key in ("status", "sport", "minority_stake_available"):
        if key in values and values[key] is None:
            del values[key]
    return values


def contact_values(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    values = _collect(payload, CONTACT_FIELDS)
    if not partial or "name" in values:
        _require(values, "name")
    return values


def activity_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = _collect(payload, ACTIVITY_FIELDS)
    _require(values, "type", "activity_date")
    return values


def intelligence_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = _collect(payload, INTELLIGENCE_FIELDS)
    _require(values, "type", "title", "intelligence_date")
    return values


def _number(name: str, v: Any, default: Optional[float] = None) -> Optional[float]:
    if v is None or v == "":
        return default
    return from_decimal_str(_decimal(name, v))


def scenario_assumptions(payload: Dict[str, Any], financials: DealFinancials) -> ScenarioAssumptions:
    """Build and validate assumptions for one save/compute request.

    A missing exit multiple is defaulted to entry valuation / deal EBITDA;
    an explicit one is used untouched. Result fields in the body are ignored
    because results are always recomputed here.
    """
    data = snake_keys(payload)
    name = _text("name", data.get("name")) or ""
    entry_valuation = _number("entry_valuation", data.get("entry_valuation"))
    stake = _number("stake_percentage", data.get("stake_percentage"))
    if entry_valuation is None:
        raise ValueError("entry_valuation is required")
    if stake is None:
        raise ValueError("stake_percentage is required")

    derived = default_exit_multiple(financials, entry_valuation)
    exit_multiple = _number("exit_multiple", data.get("exit_multiple"))
    if exit_multiple is None:
        if derived is None:
            raise ValueError("exit_multiple is required when the deal has no positive EBITDA")
        exit_multiple = derived
    entry_multiple = _number("entry_multiple", data.get("entry_multiple"), default=derived)

    exit_year = _integer("exit_year", data.get("exit_year"))
    a = ScenarioAssumptions(
        name=name,
        description=_text("description", data.get("description")),
        entry_valuation=entry_valuation,
        entry_multiple=entry_multiple,
        stake_percentage=stake,
        debt_percentage=_number("debt_percentage", data.get("debt_percentage"), 0.0),
        revenue_growth_rate=_number("revenue_growth_rate", data.get("revenue_growth_rate"), 5.0),
        ebitda_margin_improvement=_number("ebitda_margin_improvement", data.get("ebitda_margin_improvement"), 0.0),
        exit_year=5 if exit_year is None else exit_year,
        exit_multiple=exit_multiple,
    )
    validate_assumptions(a)
    return a
