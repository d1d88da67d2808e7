from __future__ import annotations
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class StoreConfig:
    data_root: str | None = None  # None keeps everything in memory


def get_store_config() -> StoreConfig:
    return StoreConfig(data_root=os.getenv("DEALFLOW_DATA_ROOT") or None)


@dataclass(frozen=True)
class ApiConfig:
    api_key: str | None = None
    rate_limit_n: int = 5
    rate_limit_window_sec: float = 1.0
    activity_list_limit: int = 50


def get_api_config() -> ApiConfig:
    return ApiConfig(
        api_key=os.getenv("API_KEY") or None,
        rate_limit_n=int(os.getenv("RATE_LIMIT_N", "5")),
        rate_limit_window_sec=float(os.getenv("RATE_LIMIT_WINDOW_SEC", "1.0")),
        activity_list_limit=int(os.getenv("ACTIVITY_LIST_LIMIT", "50")),
    )


@dataclass(frozen=True)
class ReportConfig:
    fund_name: str = "Murphy Street Partners"
    currency_symbol: str = "€"


def get_report_config() -> ReportConfig:
    return ReportConfig(
        fund_name=os.getenv("FUND_NAME", "Murphy Street Partners"),
        currency_symbol=os.getenv("CURRENCY_SYMBOL", "€"),
    )
