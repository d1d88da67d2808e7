from __future__ import annotations
from typing import Any, Dict
from flask import Flask, request, jsonify, Response, g

import json
from dataclasses import asdict
import logging
import re
import time
from collections import deque, defaultdict
from pathlib import Path

from dealflow.api.payloads import (
    activity_values, contact_values, deal_values, intelligence_values,
    scenario_assumptions, snake_keys,
)
from dealflow.config.env import get_api_config, get_store_config
from dealflow.exports.reports import deal_report_md
from dealflow.exports.writers import write_deals, write_scenarios
from dealflow.pipeline.kpi import compare_deals, pipeline_summary
from dealflow.scenarios.draft import ScenarioDraft
from dealflow.scenarios.engine import ScenarioResult, compute_scenario
from dealflow.store.codec import from_decimal_str
from dealflow.store.records import RecordNotFound
from dealflow.store.repository import Store
try:
    from flask_sock import Sock
except Exception:  # pragma: no cover
    Sock = None  # Optional dependency for WS

logger = logging.getLogger(__name__)

app = Flask(__name__)

OPENAPI_PATH = Path(__file__).with_name("openapi.json")

_store = Store(get_store_config().data_root)


def get_store() -> Store:
    return _store


def reset_store(data_root: str | Path | None = None) -> Store:
    """Swap in a fresh store (tests, or re-pointing at another data root)."""
    global _store
    _store = Store(data_root)
    _recent.clear()
    return _store


# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return get_api_config().api_key


def _get_rate_limit() -> tuple[int, float]:
    cfg = get_api_config()
    n = app.config.get('RATE_LIMIT_N')
    w = app.config.get('RATE_LIMIT_WINDOW_SEC')
    if n is None:
        n = cfg.rate_limit_n
    if w is None:
        w = cfg.rate_limit_window_sec
    return int(n), float(w)


def _get_list_limit() -> int:
    n = app.config.get('ACTIVITY_LIST_LIMIT')
    return int(n) if n is not None else get_api_config().activity_list_limit


_recent: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=100))

# Optional WebSocket support
if Sock is not None:
    sock = Sock(app)
else:
    sock = None


def _client_ip() -> str:
    xff = request.headers.get('X-Forwarded-For')
    if xff:
        return xff.split(',')[0].strip()
    return request.remote_addr or 'anon'


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            logger.warning("Rejected request to %s: bad API key", request.path)
            return jsonify({'error': 'unauthorized'}), 401
    return None


def _check_user():
    raw = request.headers.get('X-User-Id', '')
    if not re.fullmatch(r'\d+', raw.strip()) or int(raw) <= 0:
        logger.warning("Rejected request to %s: missing or invalid X-User-Id", request.path)
        return jsonify({'error': 'unauthorized'}), 401
    g.user_id = int(raw)
    return None


def _check_rate_limit(ip: str):
    # Allow if rate limiting disabled or N <= 0
    n, window = _get_rate_limit()
    if n <= 0:
        return None
    now = time.time()
    dq = _recent[ip]
    # Drop old entries outside window
    while dq and now - dq[0] > window:
        dq.popleft()
    if len(dq) >= n:
        retry = max(0.0, window - (now - dq[0]))
        logger.warning("Rate limited %s on %s", ip, request.path)
        resp = jsonify({'error': 'rate_limited'})
        resp.status_code = 429
        resp.headers['Retry-After'] = f"{retry:.2f}"
        return resp
    dq.append(now)
    return None


_PUBLIC_PATHS = ('/health', '/openapi.json')
_SCENARIO_SAVE = re.compile(r'^/deals/\d+/scenarios$')


@app.before_request
def _auth_and_rate_limit():
    if request.path in _PUBLIC_PATHS:
        return None
    unauthorized = _check_api_key()
    if unauthorized is not None:
        return unauthorized
    unauthorized = _check_user()
    if unauthorized is not None:
        return unauthorized
    # Rate limit only scenario saves
    if request.method == 'POST' and _SCENARIO_SAVE.match(request.path):
        rl = _check_rate_limit(_client_ip())
        if rl is not None:
            return rl
    return None


@app.errorhandler(RecordNotFound)
def _not_found(e):
    return jsonify({'error': 'not_found'}), 404


@app.errorhandler(ValueError)
def _bad_request(e):
    logger.warning("Bad request to %s: %s", request.path, e)
    return jsonify({'error': str(e)}), 400


def _camel(key: str) -> str:
    head, *rest = key.split('_')
    return head + ''.join(p.capitalize() for p in rest)


def to_wire(d: Dict[str, Any]) -> Dict[str, Any]:
    return {_camel(k): v for k, v in d.items()}


def _body() -> Dict[str, Any]:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


def _result_wire(result: ScenarioResult) -> Dict[str, Any]:
    return to_wire(result.to_dict())


@app.get('/health')
def health():
    return jsonify({'status': 'ok'})


# ----- deals -----

@app.get('/deals')
def list_deals():
    deals = get_store().list_deals(g.user_id)
    return jsonify({'deals': [to_wire(d.to_dict()) for d in deals]})


@app.post('/deals')
def create_deal():
    values = deal_values(_body())
    deal = get_store().create_deal(g.user_id, **values)
    return jsonify(to_wire(deal.to_dict())), 201


@app.get('/deals/<int:deal_id>')
def get_deal(deal_id: int):
    return jsonify(to_wire(get_store().get_deal(deal_id, g.user_id).to_dict()))


@app.patch('/deals/<int:deal_id>')
def update_deal(deal_id: int):
    values = deal_values(_body(), partial=True)
    deal = get_store().update_deal(deal_id, g.user_id, **values)
    return jsonify(to_wire(deal.to_dict()))


@app.delete('/deals/<int:deal_id>')
def delete_deal(deal_id: int):
    get_store().delete_deal(deal_id, g.user_id)
    return jsonify({'deleted': deal_id})


@app.get('/deals/compare')
def compare():
    raw = request.args.get('ids', '')
    ids = [int(p) for p in raw.split(',') if p.strip().isdigit()]
    if not ids:
        return jsonify({'error': 'ids is required'}), 400
    store = get_store()
    deals = [store.get_deal(i, g.user_id) for i in ids]
    return jsonify({'deals': [to_wire(r) for r in compare_deals(deals)]})


@app.get('/deals.csv')
def export_deals():
    rows = [d.to_dict() for d in get_store().list_deals(g.user_id)]
    return Response(write_deals(rows), mimetype='text/csv')


@app.get('/dashboard')
def dashboard():
    store = get_store()
    summary = pipeline_summary(
        store.list_deals(g.user_id),
        contact_count=len(store.list_contacts(g.user_id)),
        activity_count=len(store.list_activities(g.user_id, limit=_get_list_limit())),
    )
    return jsonify(to_wire(summary))


# ----- contacts -----

@app.get('/contacts')
def list_contacts():
    return jsonify({'contacts': [to_wire(c.to_dict()) for c in get_store().list_contacts(g.user_id)]})


@app.post('/contacts')
def create_contact():
    contact = get_store().create_contact(g.user_id, **contact_values(_body()))
    return jsonify(to_wire(contact.to_dict())), 201


@app.get('/contacts/<int:contact_id>')
def get_contact(contact_id: int):
    return jsonify(to_wire(get_store().get_contact(contact_id, g.user_id).to_dict()))


@app.patch('/contacts/<int:contact_id>')
def update_contact(contact_id: int):
    contact = get_store().update_contact(contact_id, g.user_id, **contact_values(_body(), partial=True))
    return jsonify(to_wire(contact.to_dict()))


@app.delete('/contacts/<int:contact_id>')
def delete_contact(contact_id: int):
    get_store().delete_contact(contact_id, g.user_id)
    return jsonify({'deleted': contact_id})


# ----- activities & intelligence -----

@app.get('/activities')
def list_activities():
    rows = get_store().list_activities(g.user_id, limit=_get_list_limit())
    return jsonify({'activities': [to_wire(a.to_dict()) for a in rows]})


@app.post('/activities')
def create_activity():
    values = activity_values(_body())
    if values.get('deal_id') is not None:
        get_store().get_deal(values['deal_id'], g.user_id)
    activity = get_store().create_activity(g.user_id, **values)
    return jsonify(to_wire(activity.to_dict())), 201


@app.get('/deals/<int:deal_id>/activities')
def deal_activities(deal_id: int):
    rows = get_store().list_deal_activities(deal_id, g.user_id)
    return jsonify({'activities': [to_wire(a.to_dict()) for a in rows]})


@app.get('/intelligence')
def list_intelligence():
    rows = get_store().list_intelligence(g.user_id, limit=_get_list_limit())
    return jsonify({'intelligence': [to_wire(i.to_dict()) for i in rows]})


@app.post('/intelligence')
def create_intelligence():
    values = intelligence_values(_body())
    if values.get('deal_id') is not None:
        get_store().get_deal(values['deal_id'], g.user_id)
    item = get_store().create_intelligence(g.user_id, **values)
    return jsonify(to_wire(item.to_dict())), 201


@app.get('/deals/<int:deal_id>/intelligence')
def deal_intelligence(deal_id: int):
    rows = get_store().list_deal_intelligence(deal_id, g.user_id)
    return jsonify({'intelligence': [to_wire(i.to_dict()) for i in rows]})


# ----- scenarios -----

def _scenario_result(financials, assumptions) -> ScenarioResult:
    result = compute_scenario(financials, assumptions)
    if not result.is_finite():
        raise ValueError("assumptions produce a result too large to represent")
    return result


@app.post('/deals/<int:deal_id>/scenarios/compute')
def compute(deal_id: int):
    financials = get_store().get_financials(deal_id, g.user_id)
    assumptions = scenario_assumptions(_body(), financials)
    result = _scenario_result(financials, assumptions)
    return jsonify({
        'assumptions': to_wire(asdict(assumptions)),
        'result': _result_wire(result),
    })


@app.get('/deals/<int:deal_id>/scenarios')
def list_scenarios(deal_id: int):
    store = get_store()
    store.get_deal(deal_id, g.user_id)
    rows = store.list_scenarios(deal_id, g.user_id)
    return jsonify({'scenarios': [to_wire(s.to_dict()) for s in rows]})


@app.post('/deals/<int:deal_id>/scenarios')
def save_scenario(deal_id: int):
    store = get_store()
    financials = store.get_financials(deal_id, g.user_id)
    assumptions = scenario_assumptions(_body(), financials)
    result = _scenario_result(financials, assumptions)
    scenario = store.create_scenario(g.user_id, deal_id, assumptions, result)
    return jsonify(to_wire(scenario.to_dict())), 201


@app.put('/scenarios/<int:scenario_id>')
def replace_scenario(scenario_id: int):
    store = get_store()
    current = store.get_scenario(scenario_id, g.user_id)
    financials = store.get_financials(current.deal_id, g.user_id)
    assumptions = scenario_assumptions(_body(), financials)
    result = _scenario_result(financials, assumptions)
    scenario = store.replace_scenario(scenario_id, g.user_id, assumptions, result)
    return jsonify(to_wire(scenario.to_dict()))


@app.delete('/scenarios/<int:scenario_id>')
def delete_scenario(scenario_id: int):
    get_store().delete_scenario(scenario_id, g.user_id)
    return jsonify({'deleted': scenario_id})


@app.get('/deals/<int:deal_id>/scenarios.csv')
def export_scenarios(deal_id: int):
    store = get_store()
    store.get_deal(deal_id, g.user_id)
    rows = [s.to_dict() for s in store.list_scenarios(deal_id, g.user_id)]
    return Response(write_scenarios(rows), mimetype='text/csv')


@app.get('/deals/<int:deal_id>/report.md')
def deal_report(deal_id: int):
    store = get_store()
    deal = store.get_deal(deal_id, g.user_id)
    body = deal_report_md(deal, store.list_scenarios(deal_id, g.user_id))
    return Response(body, mimetype='text/markdown')


@app.get('/openapi.json')
def get_openapi():
    try:
        spec = json.loads(OPENAPI_PATH.read_text())
    except (OSError, ValueError):
        return jsonify({'error': 'openapi_not_found'}), 404
    return jsonify(spec)


# ----- live recompute -----

def start_draft(deal_id: int, user_id: int) -> ScenarioDraft:
    deal = get_store().get_deal(deal_id, user_id)
    entry = from_decimal_str(deal.current_valuation) or 500.0
    stake = from_decimal_str(deal.target_stake_percentage) or 15.0
    return ScenarioDraft.start(deal.financials(), entry_valuation=entry, stake_percentage=stake)


def draft_state(draft: ScenarioDraft) -> Dict[str, Any]:
    result = draft.compute()
    return {
        'assumptions': to_wire(asdict(draft.assumptions)),
        'exitMultipleOverridden': draft.exit_multiple_overridden,
        'result': _result_wire(result),
    }


def handle_live_message(draft: ScenarioDraft, message: str) -> Dict[str, Any]:
    """Apply one client message ({"edits": {...}}) and return the recomputed state.

    A message is applied whole or not at all; on error the draft keeps its
    previous assumptions.
    """
    try:
        payload = json.loads(message)
    except ValueError:
        return {'error': 'invalid_json'}
    edits = payload.get('edits') if isinstance(payload, dict) else None
    if not isinstance(edits, dict):
        return {'error': 'edits must be an object'}
    try:
        draft.apply(snake_keys(edits))
    except ValueError as e:
        return {'error': str(e)}
    return draft_state(draft)


if sock is not None:
    @sock.route('/deals/<int:deal_id>/scenarios/live')
    def ws_live(ws, deal_id):  # pragma: no cover (logic covered via handle_live_message)
        try:
            draft = start_draft(deal_id, g.user_id)
        except RecordNotFound:
            ws.send(json.dumps({'error': 'not_found'}))
            ws.close()
            return
        ws.send(json.dumps(draft_state(draft)))
        while ws.connected:
            message = ws.receive()
            if message is None:
                break
            ws.send(json.dumps(handle_live_message(draft, message)))


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(host='0.0.0.0', port=8000)
