from __future__ import annotations
import time
from typing import List, Optional

from dealflow.config.env import ReportConfig, get_report_config
from dealflow.store.records import Deal, Scenario

# (label, scenario field, prefix, suffix); amounts get the currency symbol as prefix
SCENARIO_ROWS = [
    ("IRR", "irr", "", "%"),
    ("MOIC", "moic", "", "x"),
    ("Cash-on-Cash", "cash_on_cash", "", "%"),
    ("Entry Valuation", "entry_valuation", "{cur}", "M"),
    ("Stake %", "stake_percentage", "", "%"),
    ("Investment Amount", "investment_amount", "{cur}", "M"),
    ("Debt Financing", "debt_percentage", "", "%"),
    ("Revenue Growth (Annual)", "revenue_growth_rate", "", "%"),
    ("EBITDA Margin Improvement", "ebitda_margin_improvement", "", "pp"),
    ("Exit Year", "exit_year", "", "Y"),
    ("Exit Multiple", "exit_multiple", "", "x"),
    ("Exit Valuation", "exit_valuation", "{cur}", "M"),
]

# Decimal places per field in the report
_PLACES = {"moic": 2, "exit_year": 0}


def _fmt(value: Optional[str], field: str, prefix: str, suffix: str) -> str:
    if value is None or value == "":
        return "N/A"
    places = _PLACES.get(field, 1)
    try:
        text = f"{float(value):.{places}f}"
    except ValueError:
        text = str(value)
    return f"{prefix}{text}{suffix}"


def _money(value: Optional[str], cur: str) -> str:
    return f"{cur}{value}M" if value else "N/A"


def scenario_table_md(scenarios: List[Scenario], config: ReportConfig | None = None) -> str:
    cfg = config or get_report_config()
    if not scenarios:
        return "_No scenarios available_\n"
    header = "| Metric | " + " | ".join(s.name for s in scenarios) + " |"
    sep = "|---" * (len(scenarios) + 1) + "|"
    lines = [header, sep]
    for label, field, prefix, suffix in SCENARIO_ROWS:
        pre = prefix.format(cur=cfg.currency_symbol)
        cells = [_fmt(getattr(s, field), field, pre, suffix) for s in scenarios]
        lines.append(f"| {label} | " + " | ".join(cells) + " |")
    return "\n".join(lines) + "\n"


def deal_report_md(deal: Deal, scenarios: List[Scenario], config: ReportConfig | None = None) -> str:
    """Deal overview plus the scenario comparison table, as Markdown."""
    cfg = config or get_report_config()
    cur = cfg.currency_symbol
    lines = [f"# {cfg.fund_name}", "", f"## {deal.name}", ""]
    subtitle = " • ".join(p for p in (deal.league, deal.country) if p)
    if subtitle:
        lines += [subtitle, ""]
    lines += [
        "### Deal Overview",
        "",
        f"- Valuation: {_money(deal.current_valuation, cur)}",
        f"- Revenue: {_money(deal.revenue, cur)}",
        f"- EBITDA: {_money(deal.ebitda, cur)}",
        f"- Net Debt: {_money(deal.debt, cur)}",
        "",
    ]
    for title, body in (
        ("Investment Thesis", deal.investment_thesis),
        ("Key Risks", deal.key_risks),
        ("Value Creation Opportunities", deal.value_creation_opportunities),
    ):
        if body:
            lines += [f"### {title}", "", body, ""]
    lines += ["### Scenario Analysis", "", scenario_table_md(scenarios, cfg)]
    lines.append(f"_{cfg.fund_name} - Confidential | {time.strftime('%Y-%m-%d', time.gmtime())}_")
    return "\n".join(lines) + "\n"
