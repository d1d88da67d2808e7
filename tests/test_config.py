import os
import unittest
from unittest import mock

from dealflow.config.env import get_api_config, get_report_config, get_store_config


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            api = get_api_config()
            self.assertIsNone(api.api_key)
            self.assertEqual(api.rate_limit_n, 5)
            self.assertEqual(api.rate_limit_window_sec, 1.0)
            self.assertEqual(api.activity_list_limit, 50)
            self.assertIsNone(get_store_config().data_root)
            self.assertEqual(get_report_config().fund_name, "Murphy Street Partners")

    def test_env_overrides(self):
        env = {
            "API_KEY": "k", "RATE_LIMIT_N": "0", "ACTIVITY_LIST_LIMIT": "10",
            "DEALFLOW_DATA_ROOT": "/tmp/dealflow", "CURRENCY_SYMBOL": "$",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            api = get_api_config()
            self.assertEqual(api.api_key, "k")
            self.assertEqual(api.rate_limit_n, 0)
            self.assertEqual(api.activity_list_limit, 10)
            self.assertEqual(get_store_config().data_root, "/tmp/dealflow")
            self.assertEqual(get_report_config().currency_symbol, "$")


if __name__ == "__main__":
    unittest.main()
