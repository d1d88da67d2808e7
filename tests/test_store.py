import shutil
import tempfile
import unittest
from dataclasses import replace

from dealflow.scenarios.assumptions import ScenarioAssumptions
from dealflow.scenarios.engine import compute_scenario
from dealflow.store.codec import from_decimal_str, to_decimal_str
from dealflow.store.records import RecordNotFound
from dealflow.store.repository import Store

BASE = ScenarioAssumptions(
    name="Base Case", entry_valuation=500, stake_percentage=20, debt_percentage=0,
    revenue_growth_rate=5, ebitda_margin_improvement=2, exit_year=5, exit_multiple=12.0,
    entry_multiple=500 / 45,
)


class TestCodec(unittest.TestCase):
    def test_plain_notation(self):
        self.assertEqual(to_decimal_str(100.0), "100.0")
        self.assertEqual(to_decimal_str(15), "15.0")
        self.assertEqual(to_decimal_str(1e-7), "0.0000001")
        self.assertEqual(to_decimal_str("12.50"), "12.50")
        self.assertIsNone(to_decimal_str(None))
        self.assertIsNone(to_decimal_str(""))

    def test_round_trip_is_exact(self):
        for x in (0.1, 1 / 3, 735.1381800000001, -12.75, 2.0e20, 5e-324):
            with self.subTest(x=x):
                self.assertEqual(from_decimal_str(to_decimal_str(x)), x)

    def test_rejects_garbage(self):
        for bad in (float("nan"), float("inf"), "abc", "NaN", True):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    to_decimal_str(bad)

    def test_rejects_numbers_outside_float_range(self):
        for bad in ("1e400", "-1e309", "1e999999999", "0E-999999"):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    to_decimal_str(bad)
                with self.assertRaises(ValueError):
                    from_decimal_str(bad)

    def test_accepts_large_finite_numbers(self):
        self.assertEqual(from_decimal_str(to_decimal_str("1e300")), 1e300)
        self.assertEqual(len(to_decimal_str("1e300")), 301)


class TestStore(unittest.TestCase):
    def setUp(self):
        self.store = Store()
        self.deal = self.store.create_deal(
            1, name="Hertha Berlin", league="Bundesliga", revenue="150", ebitda="45", debt="200",
        )

    def _save(self, user_id=1, **kw):
        a = replace(BASE, **kw)
        fin = self.store.get_financials(self.deal.id, user_id)
        return self.store.create_scenario(user_id, self.deal.id, a, compute_scenario(fin, a)), a

    def test_financials_from_strings(self):
        fin = self.store.get_financials(self.deal.id, 1)
        self.assertEqual((fin.revenue, fin.ebitda, fin.debt), (150.0, 45.0, 200.0))

    def test_user_scoping(self):
        with self.assertRaises(RecordNotFound):
            self.store.get_deal(self.deal.id, 2)
        with self.assertRaises(RecordNotFound):
            self.store.update_deal(self.deal.id, 2, status="active")
        with self.assertRaises(RecordNotFound):
            self._save(user_id=2)
        self.assertEqual(self.store.list_deals(2), [])

    def test_scenarios_newest_first(self):
        first, _ = self._save(name="Base Case")
        second, _ = self._save(name="Bull Case", revenue_growth_rate=8)
        names = [s.name for s in self.store.list_scenarios(self.deal.id, 1)]
        self.assertEqual(names, ["Bull Case", "Base Case"])
        self.assertNotEqual(first.id, second.id)

    def test_result_round_trip(self):
        saved, a = self._save()
        reloaded = self.store.get_scenario(saved.id, 1)
        fin = self.store.get_financials(self.deal.id, 1)
        self.assertEqual(reloaded.result(), compute_scenario(fin, a))
        self.assertEqual(reloaded.assumptions(), a)
        self.assertEqual(reloaded.investment_amount, "100.0")

    def test_replace_keeps_identity(self):
        saved, _ = self._save()
        a = replace(BASE, exit_multiple=14.0)
        fin = self.store.get_financials(self.deal.id, 1)
        updated = self.store.replace_scenario(saved.id, 1, a, compute_scenario(fin, a))
        self.assertEqual(updated.id, saved.id)
        self.assertEqual(updated.created_at, saved.created_at)
        self.assertEqual(updated.exit_multiple, "14.0")

    def test_delete_deal_removes_scenarios(self):
        saved, _ = self._save()
        self.store.delete_deal(self.deal.id, 1)
        with self.assertRaises(RecordNotFound):
            self.store.get_scenario(saved.id, 1)

    def test_activity_limit_and_order(self):
        for day in ("2024-01-03", "2024-01-01", "2024-01-02"):
            self.store.create_activity(1, type="call", activity_date=day, deal_id=self.deal.id)
        rows = self.store.list_activities(1, limit=2)
        self.assertEqual([r.activity_date for r in rows], ["2024-01-03", "2024-01-02"])
        self.assertEqual(len(self.store.list_deal_activities(self.deal.id, 1)), 3)


class TestStorePersistence(unittest.TestCase):
    def setUp(self):
        self.root = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def test_reload_from_disk(self):
        store = Store(self.root)
        deal = store.create_deal(1, name="Hertha Berlin", revenue="150", ebitda="45", debt="200")
        fin = store.get_financials(deal.id, 1)
        saved = store.create_scenario(1, deal.id, BASE, compute_scenario(fin, BASE))

        again = Store(self.root)
        self.assertEqual(again.get_deal(deal.id, 1).name, "Hertha Berlin")
        self.assertEqual(again.get_scenario(saved.id, 1).result(), saved.result())
        nxt = again.create_deal(1, name="Valencia")
        self.assertEqual(nxt.id, deal.id + 1)


if __name__ == "__main__":
    unittest.main()
