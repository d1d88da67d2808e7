from __future__ import annotations
from typing import List, Dict, Any, Iterable
import csv
import io

# Column order for each CSV export
SCHEMAS = {
    "scenarios": [
        "id","deal_id","name","entry_valuation","entry_multiple","stake_percentage","investment_amount",
        "debt_percentage","revenue_growth_rate","ebitda_margin_improvement","exit_year","exit_multiple",
        "exit_valuation","exit_equity_value","total_return","irr","moic","cash_on_cash","created_at"
    ],
    "deals": [
        "id","name","league","country","sport","status","conviction","priority","current_valuation",
        "revenue","ebitda","debt","target_stake_percentage","current_owner","next_follow_up_date","updated_at"
    ],
}


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    w.writeheader()
    for r in rows:
        w.writerow({k: r.get(k) for k in columns})
    return buf.getvalue()


def write_scenarios(rows: Iterable[Dict[str, Any]]) -> str:
    return write_csv(rows, SCHEMAS["scenarios"])


def write_deals(rows: Iterable[Dict[str, Any]]) -> str:
    return write_csv(rows, SCHEMAS["deals"])
