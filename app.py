# app.py
import os
from dataclasses import replace

from dotenv import load_dotenv
from flask import Flask, abort, jsonify, request, session

import split_calc
from ai_parser import InvalidImageError, ReceiptParseError, parse_receipt_image
from split_calc import BillState
from utils import find_currency, format_money

load_dotenv()

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-bill-splitter")

SCAN_FAILED = "Failed to analyze receipt. Please try again or enter details manually."

# keeps the signed session cookie under the browser limit
MAX_SESSION_ITEMS = 25
MAX_ITEM_NAME = 40

# action name -> (update op, request field or None)
ACTIONS = {
    "bill-amount": (split_calc.set_bill_amount, "value"),
    "tax-amount": (split_calc.set_tax_amount, "value"),
    "tip-value": (split_calc.set_tip_value, "value"),
    "tip-type": (split_calc.set_tip_type, "tip_type"),
    "split-increment": (split_calc.increment_split, None),
    "split-decrement": (split_calc.decrement_split, None),
    "toggle-tax": (split_calc.toggle_include_tax, None),
}


def load_state() -> BillState:
    return BillState.from_dict(session.get("bill"))


def save_state(state: BillState) -> BillState:
    """
    Store the state in the session cookie. Browsers drop cookies over ~4 KB,
    so only the first MAX_SESSION_ITEMS line items (names cut to
    MAX_ITEM_NAME) are kept; the returned state is what was stored.
    """
    items = state.receipt_items
    if items is not None:
        items = tuple(
            replace(it, name=it.name[:MAX_ITEM_NAME].rstrip()) for it in items[:MAX_SESSION_ITEMS]
        )
        state = replace(state, receipt_items=items)
    session["bill"] = state.to_dict()
    return state


def bill_payload(state: BillState, currency=None) -> dict:
    results = split_calc.compute_results(state)
    symbol = find_currency(currency)
    return {
        "state": state.to_dict(),
        "results": {
            "tip_base": str(results.tip_base),
            "tip_amount": str(results.tip_amount),
            "grand_total": str(results.grand_total),
            "per_person": str(results.per_person),
            "tip_per_person": str(results.tip_per_person),
            "bill_per_person": str(results.bill_per_person),
        },
        "formatted": {
            "tip_amount": format_money(results.tip_amount, symbol),
            "grand_total": format_money(results.grand_total, symbol),
            "per_person": format_money(results.per_person, symbol),
            "tip_per_person": format_money(results.tip_per_person, symbol),
            "bill_per_person": format_money(results.bill_per_person, symbol),
        },
        "breakdown": [
            {"name": name, "value": str(value)}
            for name, value in split_calc.breakdown(state, results)
        ],
        "tip_basis_note": split_calc.tip_basis_note(state),
        "tip_presets": list(split_calc.TIP_PRESETS),
        "max_slider_tip": split_calc.MAX_SLIDER_TIP,
        "currency": currency,
    }


@app.route('/health')
def health():
    return 'ok'


@app.route('/api/bill', methods=['GET'])
def get_bill():
    return jsonify(bill_payload(load_state(), session.get("currency")))


@app.route('/api/bill/reset', methods=['POST'])
def reset_bill():
    state = save_state(split_calc.reset())
    session.pop("currency", None)
    return jsonify(bill_payload(state))


@app.route('/api/bill/<action>', methods=['POST'])
def update_bill(action):
    if action not in ACTIONS:
        abort(404)
    op, field = ACTIONS[action]
    state = load_state()
    if field is None:
        state = op(state)
    else:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = request.form
        try:
            state = op(state, body.get(field))
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
    state = save_state(state)
    return jsonify(bill_payload(state, session.get("currency")))


@app.route('/api/scan', methods=['POST'])
def scan():
    # expects multipart form-data with an 'image' file
    if 'image' not in request.files:
        return jsonify({'error': 'image missing'}), 400
    data = request.files['image'].read()

    try:
        summary = parse_receipt_image(data)
    except InvalidImageError as e:
        return jsonify({'error': str(e)}), 400
    except ReceiptParseError as e:
        app.logger.warning("Receipt scan failed: %s", e)
        return jsonify({'error': SCAN_FAILED}), 502

    state = split_calc.ingest_receipt_summary(load_state(), summary)
    state = save_state(state)
    session["currency"] = summary.currency[:8] if summary.currency else None
    return jsonify(bill_payload(state, summary.currency))


if __name__ == '__main__':
    port = int(os.getenv('FLASK_PORT', 5000))
    app.run(host='0.0.0.0', port=port)
