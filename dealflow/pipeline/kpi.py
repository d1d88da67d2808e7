from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from dealflow.store.codec import from_decimal_str
from dealflow.store.records import ACTIVE_STATUSES, DEAL_STATUSES, Deal


def safe_div(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b in (0, None):
        return None
    return float(a) / float(b)


def ev_ebitda(deal: Deal) -> Optional[float]:
    """Entry EV/EBITDA from the deal's current valuation; None when undefined."""
    return safe_div(from_decimal_str(deal.current_valuation), from_decimal_str(deal.ebitda))


def ebitda_margin(deal: Deal) -> Optional[float]:
    m = safe_div(from_decimal_str(deal.ebitda), from_decimal_str(deal.revenue))
    return m * 100.0 if m is not None else None


def compare_deals(deals: Iterable[Deal]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for d in deals:
        rows.append({
            "id": d.id,
            "name": d.name,
            "league": d.league,
            "country": d.country,
            "status": d.status,
            "conviction": d.conviction,
            "current_valuation": from_decimal_str(d.current_valuation),
            "revenue": from_decimal_str(d.revenue),
            "ebitda": from_decimal_str(d.ebitda),
            "debt": from_decimal_str(d.debt),
            "target_stake_percentage": from_decimal_str(d.target_stake_percentage),
            "ev_ebitda": ev_ebitda(d),
            "ebitda_margin": ebitda_margin(d),
        })
    return rows


def pipeline_summary(deals: List[Deal], contact_count: int, activity_count: int) -> Dict[str, Any]:
    by_status = {s: 0 for s in DEAL_STATUSES}
    for d in deals:
        by_status[d.status] = by_status.get(d.status, 0) + 1
    return {
        "total_deals": len(deals),
        "active_deals": sum(1 for d in deals if d.status in ACTIVE_STATUSES),
        "high_conviction_deals": sum(1 for d in deals if d.conviction in ("high", "very_high")),
        "by_status": by_status,
        "contacts": contact_count,
        "activities": activity_count,
    }
