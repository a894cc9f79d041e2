"""
API routes for the Case Ledger.

JSON endpoints over the ledger operations. Every route except the health
check and the login stub acts on behalf of the principal in X-User-Id.
Ledger and validation errors are mapped to responses in views/errors.py.
"""

import io
import time
from datetime import date
from typing import Any, Dict

from flask import Blueprint, current_app, g, jsonify, request, send_file

from case_ledger.models.entities import CASE_STATUSES, Case, Client, new_record_id
from case_ledger.services.advisory import FALLBACK_MESSAGE
from case_ledger.services.history import display_history, timeline_newest_first
from case_ledger.services.history_export import history_filename, render_history_pdf
from case_ledger.services.linking import case_display_name, suggest_cases
from case_ledger.services.store import PostgresStore
from case_ledger.services.views import (
    ALL,
    ALL_CASES_SORTS,
    DASHBOARD_SORTS,
    all_cases,
    client_directory,
    court_names,
    dashboard_cases,
    is_contact_stale,
    profile_stats,
)
from case_ledger.utils.logging_config import get_logger, log_performance_metric
from case_ledger.utils.security import require_principal, secure_headers
from case_ledger.utils.validators import ValidationError, validator

api_bp = Blueprint("api", __name__)


def get_ledger():
    """Get the case ledger from the current app"""
    from case_ledger import get_ledger as _get_ledger

    return _get_ledger()


def get_advisor():
    """Get the advisory service from the current app"""
    from case_ledger import get_advisor as _get_advisor

    return _get_advisor()


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", "body", "INVALID_TYPE")
    return data


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _client_dict(client: Client) -> Dict[str, Any]:
    data = client.to_dict()
    data["contact_stale"] = is_contact_stale(
        client.last_contacted, days=current_app.config.get("STALE_CONTACT_DAYS", 30)
    )
    return data


@api_bp.route("/health")
def health():
    """Store reachability check"""
    store = get_ledger().repository.store
    store.ping()
    payload = {"success": True, "status": "healthy", "backend": store.backend}
    if isinstance(store, PostgresStore):
        payload["pool"] = store.db.get_connection_stats()
    return jsonify(payload)


# Session and profile


@api_bp.route("/session", methods=["POST"])
@secure_headers
def login():
    """Login stub: find or register the user for an e-mail address"""
    data = _json_body()
    email = validator.validate_email(data.get("email"))
    name = validator.validate_text(data.get("name"), "name", 200) or None

    user = get_ledger().login(email, name)
    return jsonify({"success": True, "user": user.to_dict()})


@api_bp.route("/profile", methods=["GET"])
@require_principal
def get_profile():
    ledger = get_ledger()
    user = ledger.get_user(g.principal_id)
    stats = profile_stats(ledger.load_cases(g.principal_id))
    return jsonify({"success": True, "user": user.to_dict(), "stats": stats})


@api_bp.route("/profile", methods=["PUT"])
@require_principal
def update_profile():
    changes = validator.validate_profile_payload(_json_body())
    user = get_ledger().update_profile(g.principal_id, **changes)
    return jsonify({"success": True, "user": user.to_dict()})


# Cases


@api_bp.route("/cases", methods=["GET"])
@require_principal
@secure_headers
def list_cases():
    """All-cases view with search, status filter and sort"""
    start = time.perf_counter()
    query = validator.validate_search_query(request.args.get("q", ""))
    status = validator.validate_choice(request.args.get("status"), "status", [ALL] + CASE_STATUSES, ALL)
    sort_by = validator.validate_choice(request.args.get("sort"), "sort", ALL_CASES_SORTS, "RECENT")

    cases = all_cases(get_ledger().load_cases(g.principal_id), query=query, status=status, sort_by=sort_by)

    log_performance_metric("api_list_cases_duration", _elapsed_ms(start), results_count=len(cases))
    return jsonify({"success": True, "cases": [c.to_dict() for c in cases], "count": len(cases)})


@api_bp.route("/cases/dashboard", methods=["GET"])
@require_principal
@secure_headers
def dashboard():
    """Cases listed on one date (today by default)"""
    on_date = validator.validate_date(request.args.get("date") or date.today().isoformat(), "date")
    query = validator.validate_search_query(request.args.get("q", ""))
    court = validator.sanitize_string(request.args.get("court", ALL), max_length=200) or ALL
    sort_by = validator.validate_choice(request.args.get("sort"), "sort", DASHBOARD_SORTS, "SERIAL")

    owned = get_ledger().load_cases(g.principal_id)
    cases = dashboard_cases(owned, on_date, query=query, court=court, sort_by=sort_by)
    return jsonify(
        {
            "success": True,
            "date": on_date,
            "cases": [c.to_dict() for c in cases],
            "count": len(cases),
            "courts": court_names(owned),
        }
    )


@api_bp.route("/cases", methods=["POST"])
@require_principal
def create_case():
    fields = validator.validate_new_case(_json_body())
    case = Case(case_id=new_record_id(), user_id=g.principal_id, **fields)

    stored = get_ledger().save_case(g.principal_id, None, case)
    return jsonify({"success": True, "case": stored.to_dict()}), 201


@api_bp.route("/cases/<case_id>", methods=["GET"])
@require_principal
def get_case(case_id):
    case = get_ledger().get_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    return jsonify({"success": True, "case": case.to_dict()})


@api_bp.route("/cases/<case_id>", methods=["PUT"])
@require_principal
def update_case(case_id):
    """Edit a case; moving next_date records the superseded step in its history"""
    ledger = get_ledger()
    previous = ledger.get_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    changes = validator.validate_case_payload(_json_body())

    merged = previous.to_dict()
    merged.update(changes)
    incoming = Case.from_dict(merged)

    stored = ledger.save_case(g.principal_id, previous, incoming)
    return jsonify(
        {
            "success": True,
            "case": stored.to_dict(),
            "history_appended": len(stored.history) > len(previous.history),
        }
    )


@api_bp.route("/cases/<case_id>", methods=["DELETE"])
@require_principal
def delete_case(case_id):
    removed = get_ledger().delete_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    return jsonify({"success": True, "deleted": removed})


@api_bp.route("/cases/<case_id>/history", methods=["GET"])
@require_principal
def case_history(case_id):
    """Timeline newest first; legacy cases get one derived entry"""
    case = get_ledger().get_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    timeline = timeline_newest_first(case)
    return jsonify(
        {
            "success": True,
            "case_id": case.case_id,
            "next_date": case.next_date,
            "history": [item.to_dict() for item in timeline],
            "derived": not case.history and bool(display_history(case)),
        }
    )


@api_bp.route("/cases/<case_id>/history.pdf", methods=["GET"])
@require_principal
def case_history_pdf(case_id):
    start = time.perf_counter()
    case = get_ledger().get_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    pdf = render_history_pdf(case)

    log_performance_metric("history_pdf_render_duration", _elapsed_ms(start), case_id=case.case_id, size=len(pdf))
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=history_filename(case),
    )


@api_bp.route("/cases/<case_id>/advice", methods=["GET"])
@require_principal
def case_advice(case_id):
    """Preparation hints for the next hearing; never fails on generator errors"""
    case = get_ledger().get_case(g.principal_id, validator.validate_record_id(case_id, "case_id"))
    advice = get_advisor().suggest(case.case_type, case.step_of_the_day, case.notes)
    return jsonify({"success": True, "case_id": case.case_id, "advice": advice, "fallback": advice == FALLBACK_MESSAGE})


@api_bp.route("/cases/bulk-complete", methods=["POST"])
@require_principal
def bulk_complete():
    ids = validator.validate_id_list(_json_body().get("ids"))
    ledger = get_ledger()
    completed = ledger.bulk_complete_cases(g.principal_id, ids)

    cases = ledger.load_cases(g.principal_id)
    return jsonify(
        {
            "success": True,
            "completed": [c.case_id for c in completed],
            "skipped": [i for i in ids if i not in {c.case_id for c in completed}],
            "cases": [c.to_dict() for c in cases],
        }
    )


@api_bp.route("/cases/bulk-delete", methods=["POST"])
@require_principal
def bulk_delete():
    ids = validator.validate_id_list(_json_body().get("ids"))
    ledger = get_ledger()
    removed = ledger.bulk_delete_cases(g.principal_id, ids)

    cases = ledger.load_cases(g.principal_id)
    return jsonify({"success": True, "deleted": removed, "cases": [c.to_dict() for c in cases]})


# Clients


@api_bp.route("/clients", methods=["GET"])
@require_principal
@secure_headers
def list_clients():
    query = validator.validate_search_query(request.args.get("q", ""))
    clients = client_directory(get_ledger().load_clients(g.principal_id), query)
    return jsonify({"success": True, "clients": [_client_dict(c) for c in clients], "count": len(clients)})


@api_bp.route("/clients/case-suggestions", methods=["GET"])
@require_principal
def client_case_suggestions():
    """Cases a client form may link to, by case number or parties"""
    query = validator.validate_search_query(request.args.get("q", ""))
    cases = suggest_cases(query, get_ledger().load_cases(g.principal_id))
    return jsonify(
        {
            "success": True,
            "suggestions": [
                {"case_id": c.case_id, "case_number": c.case_number, "case_name": case_display_name(c)} for c in cases
            ],
        }
    )


@api_bp.route("/clients", methods=["POST"])
@require_principal
def create_client():
    fields = validator.validate_client_payload(_json_body())
    client = Client(client_id=new_record_id(), user_id=g.principal_id, **fields)

    result = get_ledger().save_client(g.principal_id, client)
    return (
        jsonify(
            {
                "success": True,
                "client": _client_dict(result.client),
                "linked_cases": [c.case_id for c in result.linked_cases],
            }
        ),
        201,
    )


@api_bp.route("/clients/<client_id>", methods=["GET"])
@require_principal
def get_client(client_id):
    client = get_ledger().get_client(g.principal_id, validator.validate_record_id(client_id, "client_id"))
    return jsonify({"success": True, "client": _client_dict(client)})


@api_bp.route("/clients/<client_id>", methods=["PUT"])
@require_principal
def update_client(client_id):
    ledger = get_ledger()
    previous = ledger.get_client(g.principal_id, validator.validate_record_id(client_id, "client_id"))
    changes = validator.validate_client_payload(_json_body(), require_name=False)

    merged = previous.to_dict()
    merged.update(changes)
    if "case_number" in changes and changes["case_number"] != previous.case_number and "case_name" not in changes:
        # Stale display cache; refilled from the newly matched case
        merged["case_name"] = None

    result = ledger.save_client(g.principal_id, Client.from_dict(merged))
    return jsonify(
        {
            "success": True,
            "client": _client_dict(result.client),
            "linked_cases": [c.case_id for c in result.linked_cases],
        }
    )


@api_bp.route("/clients/<client_id>", methods=["DELETE"])
@require_principal
def delete_client(client_id):
    """Delete a client; its cases stay and lose the link"""
    logger = get_logger("api.clients")
    unlinked = get_ledger().delete_client(g.principal_id, validator.validate_record_id(client_id, "client_id"))

    logger.info(
        "Client deleted",
        extra={"event": "client_delete_request", "client_id": client_id, "unlinked_count": len(unlinked)},
    )
    return jsonify({"success": True, "unlinked_cases": [c.case_id for c in unlinked]})
