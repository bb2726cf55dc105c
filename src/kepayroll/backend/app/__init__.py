"""Application factory for the kepayroll HTTP API."""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import BadRequest

from kepayroll.backend.services.errors import PayrollError, ReconciliationDefect

from .http import problem_for_payroll_error, problem_response
from .routes import register_routes
from .routes.config import get_configuration_metadata

_LOGGER = logging.getLogger(__name__)


def create_app() -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)

    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {"status": "ok", **get_configuration_metadata()}
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(PayrollError)
    def handle_payroll_error(error: PayrollError):
        """Translate engine errors into problem responses."""

        if isinstance(error, ReconciliationDefect):
            _LOGGER.error("Reconciliation defect while serving request: %s", error)
        return problem_for_payroll_error(error).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface remaining validation errors to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app


__all__ = ["create_app"]
