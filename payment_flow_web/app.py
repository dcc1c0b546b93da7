import dataclasses
import logging
import os

from flask import Flask, Response, jsonify, request

from payment_flow.config import configure_logging, load_settings
from payment_flow.data_models import CURRENCIES, IndexPeriod
from payment_flow.engine import calculate_plan_cached
from payment_flow.formatter import summary_blocks
from payment_flow.index import lookup_index
from payment_flow.index_store import create_store_from_env
from payment_flow.main import calculated_plan_to_dict, plan_from_dict, validate_proposal_data
from payment_flow.pdf_export import generate_pdf
from payment_flow.txt_export import generate_txt
from payment_flow.utils import parse_year_month

logger = logging.getLogger(__name__)

EXPORTERS = {"pdf": generate_pdf, "txt": generate_txt}


def _index_period(value):
    if not value:
        return None
    return IndexPeriod.from_date(parse_year_month(value))


def create_app(settings=None, index_store=None) -> Flask:
    """Build the JSON API.

    ``index_store`` defaults to the store named by the settings; pass one
    explicitly to share a store (or an in-memory database in tests).
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    app = Flask(__name__)
    app.config["PAYMENT_FLOW_SETTINGS"] = settings
    store = index_store if index_store is not None else create_store_from_env(settings.index_database_url)

    def _calculate(payload):
        try:
            plan = plan_from_dict(payload)
        except TypeError as exc:
            raise ValueError(f"Malformed proposal: {exc}") from exc
        index = lookup_index(store, _index_period(payload.get("index_period")))
        return plan, calculate_plan_cached(plan, index)

    def _payload():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValueError("Expected a JSON object")
        return payload

    @app.errorhandler(ValueError)
    def bad_request(exc):
        return jsonify({"error": str(exc)}), 400

    @app.post("/api/calculate")
    def calculate():
        plan, calculated = _calculate(_payload())
        return jsonify(
            {
                "result": calculated_plan_to_dict(calculated),
                "summary": [dataclasses.asdict(b) for b in summary_blocks(plan, calculated, settings.index_name)],
            }
        )

    @app.post("/api/export/<fmt>")
    def export(fmt):
        if fmt not in EXPORTERS:
            return jsonify({"error": f"Unsupported format: {fmt}"}), 404
        payload = _payload()
        agent_name = str(payload.get("agent_name", "")).strip()
        if not agent_name:
            raise ValueError("Missing agent name")
        plan, calculated = _calculate(payload)
        problems = validate_proposal_data(plan)
        if problems:
            return jsonify({"error": "; ".join(problems)}), 400
        document = EXPORTERS[fmt](plan, calculated, agent_name, payload.get("agent_license"), settings)
        return Response(
            document.content,
            mimetype=document.media_type,
            headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
        )

    @app.get("/api/index")
    def index_value():
        found = lookup_index(store, _index_period(request.args.get("period")))
        if found is None:
            return jsonify({"error": "No index value recorded"}), 404
        return jsonify(
            {
                "name": settings.index_name,
                "value": str(found.value),
                "period": str(found.period),
                "is_stale": found.is_stale,
            }
        )

    @app.get("/api/currencies")
    def currencies():
        return jsonify(
            [
                {"code": c.code, "symbol": c.symbol, "rate": str(c.rate), "name": c.name}
                for c in CURRENCIES.values()
            ]
        )

    return app


if __name__ == "__main__":
    print("Starting Payment Flow API...")
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 8710)), debug=True)
