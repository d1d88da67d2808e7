import csv
import io
import unittest

from dealflow.config.env import ReportConfig
from dealflow.exports.reports import deal_report_md, scenario_table_md
from dealflow.exports.writers import SCHEMAS, write_deals, write_scenarios
from dealflow.scenarios.assumptions import ScenarioAssumptions
from dealflow.scenarios.engine import compute_scenario
from dealflow.store.records import Deal, Scenario

DEAL = Deal(
    id=1, user_id=1, name="Hertha Berlin", league="Bundesliga", country="Germany",
    current_valuation="500", revenue="150", ebitda="45", debt="200",
    investment_thesis="Undervalued Bundesliga club with strong brand and stadium assets.",
    key_risks="Relegation risk",
)


def _scenario(sid, name, **kw):
    a = ScenarioAssumptions(name=name, entry_valuation=500, stake_percentage=20, exit_multiple=12.0, **kw)
    return Scenario.build(sid, DEAL.id, 1, a, compute_scenario(DEAL.financials(), a), created_at="2024-01-01T00:00:00Z")


class TestExports(unittest.TestCase):
    def test_scenarios_csv(self):
        rows = [_scenario(1, "Base Case").to_dict(), _scenario(2, "Bull Case", revenue_growth_rate=8).to_dict()]
        txt = write_scenarios(rows)
        reader = csv.DictReader(io.StringIO(txt))
        recs = list(reader)
        self.assertEqual(reader.fieldnames, SCHEMAS["scenarios"])
        self.assertEqual([r["name"] for r in recs], ["Base Case", "Bull Case"])
        self.assertEqual(recs[0]["investment_amount"], "100.0")

    def test_deals_csv(self):
        txt = write_deals([DEAL.to_dict()])
        self.assertTrue(txt.startswith("id,name,league,country"))
        self.assertIn("Hertha Berlin", txt)

    def test_report_md(self):
        cfg = ReportConfig(fund_name="Test Fund", currency_symbol="€")
        md = deal_report_md(DEAL, [_scenario(1, "Base Case")], cfg)
        self.assertIn("# Test Fund", md)
        self.assertIn("## Hertha Berlin", md)
        self.assertIn("Bundesliga • Germany", md)
        self.assertIn("- Net Debt: €200M", md)
        self.assertIn("### Investment Thesis", md)
        self.assertNotIn("### Value Creation Opportunities", md)
        self.assertIn("| Metric | Base Case |", md)
        self.assertIn("| Investment Amount | €100.0M |", md)
        self.assertIn("| Exit Year | 5Y |", md)

    def test_report_without_scenarios(self):
        self.assertIn("No scenarios available", scenario_table_md([], ReportConfig()))


if __name__ == "__main__":
    unittest.main()
