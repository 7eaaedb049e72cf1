"""
Flask route handlers for the REST API.
"""

import sys
import traceback

from flask import g, jsonify, request
from sqlalchemy import text

from well2nest import analysis, queries, workflows
from well2nest.api.auth import get_auth, login_required
from well2nest.errors import AccessDenied, DataAccessError, InvalidRole, PartialWriteFailure
from well2nest.models import json_safe

LISTING_PARAMS = {
    "appointments": ("start", "end", "status"),
    "prescriptions": ("status",),
    "schedules": ("start", "end"),
}


def _rows(rows):
    return [json_safe(r) for r in rows]


def _user_payload(session):
    row = session.identity.to_row()
    row.pop("password_hash", None)
    return {
        "id": session.user_id,
        "display_name": session.identity.display_name,
        "role": session.role.value,
        "data": row,
    }


def _body():
    return request.get_json(silent=True) or {}


def register_routes(app, gateway):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Well2Nest Hospital Portal API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "login": "/api/auth/login",
                "logout": "/api/auth/logout",
                "profile": "/api/user/profile",
                "dashboard": "/api/dashboard",
                "listings": [f"/api/{name}" for name in sorted(queries.LISTINGS)],
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        healthy = True
        try:
            with gateway.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            print(f"[WARN] Health check failed: {e}", file=sys.stderr)
            healthy = False
        return jsonify({
            "status": "healthy" if healthy else "unhealthy",
            "checks": {"database": healthy},
        }), 200 if healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        data = _body()
        email = str(data.get("email", "")).strip()
        password = str(data.get("password", ""))
        role = str(data.get("role", "")).strip()
        if not email or not password or not role:
            return jsonify({"error": "email, password and role are required"}), 400

        result = get_auth().login(email, password, role)
        if not result.success:
            status = 400 if isinstance(result.error, InvalidRole) else 401
            return jsonify({"success": False, "error": result.message}), status

        return jsonify({"success": True, "user": _user_payload(result.session)}), 200

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        get_auth().logout()
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    @app.route("/api/user/profile", methods=["GET"])
    @login_required()
    def get_profile():
        return jsonify({"success": True, "user": _user_payload(g.session)}), 200

    # ── Dashboards / listings ────────────────────────────────────────

    @app.route("/api/dashboard", methods=["GET"])
    @login_required()
    def dashboard():
        stats = queries.dashboard_stats(gateway, g.session)
        for key, value in stats.items():
            if isinstance(value, list):
                stats[key] = _rows(value)
        return jsonify({"success": True, "stats": stats}), 200

    @app.route("/api/<listing>", methods=["GET"])
    @login_required()
    def listing(listing):
        fn = queries.LISTINGS.get(listing)
        if fn is None:
            return jsonify({"error": f"Unknown listing '{listing}'"}), 404
        kwargs = {k: request.args[k] for k in LISTING_PARAMS.get(listing, ()) if request.args.get(k)}
        rows = fn(gateway, g.session, **kwargs)
        return jsonify({"success": True, "count": len(rows), "data": _rows(rows)}), 200

    @app.route("/api/billing/summary", methods=["GET"])
    @login_required()
    def billing_summary():
        invoices = queries.list_invoices(gateway, g.session)
        transactions = queries.list_transactions(gateway, g.session)
        return jsonify({"success": True, "summary": analysis.billing_summary(invoices, transactions)}), 200

    @app.route("/api/inventory/summary", methods=["GET"])
    @login_required()
    def inventory_summary():
        items = queries.list_inventory(gateway, g.session)
        return jsonify({"success": True, "summary": analysis.inventory_summary(items)}), 200

    @app.route("/api/departments/stats", methods=["GET"])
    @login_required("admin")
    def department_stats():
        stats = analysis.department_stats(
            queries.list_departments(gateway, g.session),
            queries.list_doctors(gateway, g.session),
            queries.list_appointments(gateway, g.session),
        )
        return jsonify({"success": True, "departments": stats}), 200

    # ── Writes ───────────────────────────────────────────────────────

    @app.route("/api/appointments", methods=["POST"])
    @login_required()
    def create_appointment():
        created = workflows.create_appointment(gateway, g.session, _body())
        return jsonify({
            "success": True,
            "appointment": json_safe(created["appointment"]),
            "invoice": json_safe(created["invoice"]),
        }), 201

    @app.route("/api/invoices", methods=["POST"])
    @login_required("admin")
    def create_invoice():
        invoice = workflows.create_invoice(gateway, g.session, _body())
        return jsonify({"success": True, "invoice": json_safe(invoice)}), 201

    @app.route("/api/payments", methods=["POST"])
    @login_required()
    def process_payment():
        data = _body()
        result = workflows.process_payment(
            gateway, g.session,
            data.get("invoice_id"), data.get("amount", 0),
            data.get("payment_method", "cash"),
        )
        return jsonify({
            "success": True,
            "transaction": json_safe(result["transaction"]),
            "invoice": json_safe(result["invoice"]),
        }), 201

    @app.route("/api/prescriptions", methods=["POST"])
    @login_required()
    def create_prescription():
        prescription = workflows.create_prescription(gateway, g.session, _body())
        return jsonify({"success": True, "prescription": json_safe(prescription)}), 201

    @app.route("/api/prescriptions/<int:prescription_id>/dispense", methods=["POST"])
    @login_required()
    def dispense_prescription(prescription_id):
        data = _body()
        result = workflows.dispense_prescription(
            gateway, g.session, prescription_id, data.get("quantity", 0), data.get("notes", ""),
        )
        return jsonify({"success": True, "prescription": json_safe(result)}), 200

    @app.route("/api/schedules", methods=["POST"])
    @login_required()
    def create_schedule():
        schedule = workflows.create_schedule(gateway, g.session, _body())
        return jsonify({"success": True, "schedule": json_safe(schedule)}), 201

    @app.route("/api/inventory", methods=["POST"])
    @login_required()
    def create_inventory_item():
        item = workflows.save_inventory_item(gateway, g.session, _body())
        return jsonify({"success": True, "item": json_safe(item)}), 201

    @app.route("/api/inventory/<int:item_id>", methods=["PUT", "DELETE"])
    @login_required()
    def change_inventory_item(item_id):
        if request.method == "DELETE":
            workflows.delete_inventory_item(gateway, g.session, item_id)
        else:
            workflows.save_inventory_item(gateway, g.session, _body(), item_id=item_id)
        return jsonify({"success": True}), 200

    @app.route("/api/settings/<key>", methods=["PUT"])
    @login_required("admin")
    def update_setting(key):
        workflows.update_setting(gateway, g.session, key, str(_body().get("value", "")))
        return jsonify({"success": True}), 200

    @app.route("/api/admin-users", methods=["POST"])
    @login_required("admin")
    def create_admin_user():
        data = _body()
        user = workflows.create_admin_user(
            gateway, g.session,
            data.get("email", ""), data.get("full_name", ""),
            data.get("password", ""), data.get("role", "admin"),
        )
        user.pop("password_hash", None)
        return jsonify({"success": True, "user": json_safe(user)}), 201

    @app.route("/api/users/<collection>/<int:user_id>/active", methods=["POST"])
    @login_required("admin")
    def set_user_active(collection, user_id):
        active = bool(_body().get("active", True))
        workflows.set_user_active(gateway, g.session, collection, user_id, active)
        return jsonify({"success": True, "active": active}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(AccessDenied)
    def access_denied(e):
        return jsonify({"error": "Access denied", "message": str(e)}), 403

    @app.errorhandler(PartialWriteFailure)
    def partial_write(e):
        return jsonify({
            "success": False,
            "error": "Partial write failure",
            "message": str(e),
            "committed": e.committed,
            "committed_id": e.committed_id,
            "failed_step": e.failed_step,
        }), 409

    @app.errorhandler(DataAccessError)
    def data_access_error(e):
        print(f"[ERROR] Data access error: {e}", file=sys.stderr)
        return jsonify({"success": False, "error": "Data access failed", "message": str(e)}), 502

    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"success": False, "error": "Invalid request", "message": str(e)}), 400

    @app.errorhandler(KeyError)
    def missing_field(e):
        return jsonify({"success": False, "error": "Missing field", "message": str(e)}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        traceback.print_exc()
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
