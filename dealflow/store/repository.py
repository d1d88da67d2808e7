from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
import json
import logging
import threading
import time
from pathlib import Path

from dealflow.scenarios.assumptions import DealFinancials, ScenarioAssumptions
from dealflow.scenarios.engine import ScenarioResult
from dealflow.store.records import (
    Activity, Contact, Deal, Intelligence, RecordNotFound, Scenario, _Record,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=_Record)

TABLES: Dict[str, Type[_Record]] = {
    "deals": Deal,
    "contacts": Contact,
    "activities": Activity,
    "scenarios": Scenario,
    "intelligence": Intelligence,
}


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class Store:
    """In-process tables keyed by id, optionally mirrored to <data_root>/<table>.json.

    Every read and write is scoped by user_id; a record owned by someone
    else is indistinguishable from a missing one.
    """

    def __init__(self, data_root: str | Path | None = None):
        self._rows: Dict[str, Dict[int, _Record]] = {t: {} for t in TABLES}
        self._next_id: Dict[str, int] = {t: 1 for t in TABLES}
        self._lock = threading.Lock()
        self._root = Path(data_root).resolve() if data_root else None
        if self._root is not None:
            self._root.mkdir(parents=True, exist_ok=True)
            self._load()

    # ----- persistence -----

    def _load(self) -> None:
        for table, cls in TABLES.items():
            path = self._root / f"{table}.json"
            if not path.exists():
                continue
            data = json.loads(path.read_text())
            for row in data.get("rows", []):
                rec = cls.from_dict(row)
                self._rows[table][rec.id] = rec
            self._next_id[table] = int(data.get("next_id", max(self._rows[table], default=0) + 1))
        logger.info("Loaded store from %s", self._root)

    def _persist(self, table: str) -> None:
        # Caller holds the lock
        if self._root is None:
            return
        payload = {
            "next_id": self._next_id[table],
            "rows": [r.to_dict() for r in self._rows[table].values()],
        }
        try:
            (self._root / f"{table}.json").write_text(json.dumps(payload, indent=2))
        except OSError:
            logger.exception("Failed to persist table %s", table)
            raise

    # ----- generic helpers -----

    def _insert(self, table: str, build: Callable[[int, str], R]) -> R:
        with self._lock:
            rid = self._next_id[table]
            self._next_id[table] = rid + 1
            rec = build(rid, _now())
            self._rows[table][rid] = rec
            self._persist(table)
        logger.info("Created %s id=%s", table, rid)
        return rec

    def _get(self, table: str, rid: int, user_id: int) -> Any:
        with self._lock:
            rec = self._rows[table].get(rid)
        if rec is None or rec.user_id != user_id:
            raise RecordNotFound(f"{table} {rid} not found")
        return rec

    def _select(self, table: str, pred: Callable[[Any], bool], sort_key: Callable[[Any], Any],
                limit: Optional[int] = None) -> List[Any]:
        with self._lock:
            rows = [r for r in self._rows[table].values() if pred(r)]
        rows.sort(key=sort_key, reverse=True)
        return rows[:limit] if limit is not None else rows

    def _update(self, table: str, rid: int, user_id: int, updates: Dict[str, Any]) -> Any:
        with self._lock:
            rec = self._rows[table].get(rid)
            if rec is None or rec.user_id != user_id:
                raise RecordNotFound(f"{table} {rid} not found")
            rec = replace(rec, **updates, updated_at=_now())
            self._rows[table][rid] = rec
            self._persist(table)
        logger.info("Updated %s id=%s fields=%s", table, rid, sorted(updates))
        return rec

    def _delete(self, table: str, rid: int, user_id: int) -> None:
        with self._lock:
            rec = self._rows[table].get(rid)
            if rec is None or rec.user_id != user_id:
                raise RecordNotFound(f"{table} {rid} not found")
            del self._rows[table][rid]
            if table == "deals":
                # Scenarios are owned by their deal
                orphans = [k for k, s in self._rows["scenarios"].items() if s.deal_id == rid]
                for k in orphans:
                    del self._rows["scenarios"][k]
                if orphans:
                    self._persist("scenarios")
            self._persist(table)
        logger.info("Deleted %s id=%s", table, rid)

    # ----- deals -----

    def create_deal(self, user_id: int, **values: Any) -> Deal:
        return self._insert("deals", lambda rid, ts: Deal(
            id=rid, user_id=user_id, created_at=ts, updated_at=ts, **values))

    def list_deals(self, user_id: int) -> List[Deal]:
        return self._select("deals", lambda d: d.user_id == user_id, lambda d: (d.updated_at, d.id))

    def get_deal(self, deal_id: int, user_id: int) -> Deal:
        return self._get("deals", deal_id, user_id)

    def update_deal(self, deal_id: int, user_id: int, **updates: Any) -> Deal:
        return self._update("deals", deal_id, user_id, updates)

    def delete_deal(self, deal_id: int, user_id: int) -> None:
        self._delete("deals", deal_id, user_id)

    def get_financials(self, deal_id: int, user_id: int) -> DealFinancials:
        return self.get_deal(deal_id, user_id).financials()

    # ----- contacts -----

    def create_contact(self, user_id: int, **values: Any) -> Contact:
        return self._insert("contacts", lambda rid, ts: Contact(
            id=rid, user_id=user_id, created_at=ts, updated_at=ts, **values))

    def list_contacts(self, user_id: int) -> List[Contact]:
        return self._select("contacts", lambda c: c.user_id == user_id, lambda c: (c.updated_at, c.id))

    def get_contact(self, contact_id: int, user_id: int) -> Contact:
        return self._get("contacts", contact_id, user_id)

    def update_contact(self, contact_id: int, user_id: int, **updates: Any) -> Contact:
        return self._update("contacts", contact_id, user_id, updates)

    def delete_contact(self, contact_id: int, user_id: int) -> None:
        self._delete("contacts", contact_id, user_id)

    # ----- activities -----

    def create_activity(self, user_id: int, **values: Any) -> Activity:
        return self._insert("activities", lambda rid, ts: Activity(
            id=rid, user_id=user_id, created_at=ts, updated_at=ts, **values))

    def list_activities(self, user_id: int, limit: int = 50) -> List[Activity]:
        return self._select("activities", lambda a: a.user_id == user_id,
                            lambda a: (a.activity_date, a.id), limit=limit)

    def list_deal_activities(self, deal_id: int, user_id: int) -> List[Activity]:
        return self._select("activities", lambda a: a.user_id == user_id and a.deal_id == deal_id,
                            lambda a: (a.activity_date, a.id))

    # ----- intelligence -----

    def create_intelligence(self, user_id: int, **values: Any) -> Intelligence:
        return self._insert("intelligence", lambda rid, ts: Intelligence(
            id=rid, user_id=user_id, created_at=ts, updated_at=ts, **values))

    def list_intelligence(self, user_id: int, limit: int = 50) -> List[Intelligence]:
        return self._select("intelligence", lambda i: i.user_id == user_id,
                            lambda i: (i.intelligence_date, i.id), limit=limit)

    def list_deal_intelligence(self, deal_id: int, user_id: int) -> List[Intelligence]:
        return self._select("intelligence", lambda i: i.user_id == user_id and i.deal_id == deal_id,
                            lambda i: (i.intelligence_date, i.id))

    # ----- scenarios -----

    def create_scenario(self, user_id: int, deal_id: int, assumptions: ScenarioAssumptions,
                        result: ScenarioResult) -> Scenario:
        # Deal must exist and belong to the caller
        self.get_deal(deal_id, user_id)
        return self._insert("scenarios", lambda rid, ts: Scenario.build(
            rid, deal_id, user_id, assumptions, result, created_at=ts))

    def list_scenarios(self, deal_id: int, user_id: int) -> List[Scenario]:
        return self._select("scenarios", lambda s: s.user_id == user_id and s.deal_id == deal_id,
                            lambda s: (s.created_at, s.id))

    def get_scenario(self, scenario_id: int, user_id: int) -> Scenario:
        return self._get("scenarios", scenario_id, user_id)

    def replace_scenario(self, scenario_id: int, user_id: int, assumptions: ScenarioAssumptions,
                         result: ScenarioResult) -> Scenario:
        current = self.get_scenario(scenario_id, user_id)
        fresh = Scenario.build(current.id, current.deal_id, user_id, assumptions, result)
        updates = {k: v for k, v in fresh.to_dict().items()
                   if k not in ("id", "deal_id", "user_id", "created_at", "updated_at")}
        return self._update("scenarios", scenario_id, user_id, updates)

    def delete_scenario(self, scenario_id: int, user_id: int) -> None:
        self._delete("scenarios", scenario_id, user_id)
