"""Chat Gateway HTTP handler - session and turn endpoints.

Thin boundary for a presentation layer. Every turn is evaluated by the
PipelineOrchestrator; this module only maps its structured results and
exceptions to JSON responses.
"""
import asyncio
import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from wardsafe.shared.utils import configure_pii_salt, hash_pii
from wardsafe.services.audit_service import AuditEventType
from wardsafe.services.crisis_engine import HOTLINES
from wardsafe.services.llm_service import ModelClient
from wardsafe.services.safety_service import (
    BackendConfig,
    InvalidBackendConfigError,
    RateLimitConfig,
    SafetyConfig,
)
from wardsafe.services.safety_service.config import DEFAULT_BASE_URL
from .pipeline import PipelineOrchestrator
from .session import SessionBusyError, SessionNotFoundError, SessionRegistry

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configure PII salt
pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

SAFETY_CONFIG = SafetyConfig(
    max_input_length=int(os.getenv("WARDSAFE_MAX_INPUT_LENGTH", "2000")),
    max_output_length=int(os.getenv("WARDSAFE_MAX_OUTPUT_LENGTH", "4000")),
    rate_limit=RateLimitConfig(
        max_requests=int(os.getenv("WARDSAFE_MAX_REQUESTS", "15")),
        window_ms=int(os.getenv("WARDSAFE_WINDOW_MS", "60000")),
    ),
)

DEFAULT_BACKEND = BackendConfig(
    base_url=os.getenv("WARDSAFE_BASE_URL", DEFAULT_BASE_URL),
    model=os.getenv("WARDSAFE_MODEL", ""),
)

CONFIG_FIELDS = ("base_url", "model", "temperature", "max_tokens")

_registry: Optional[SessionRegistry] = None
_orchestrator: Optional[PipelineOrchestrator] = None


def get_registry() -> SessionRegistry:
    """Get or create the global session registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(safety_config=SAFETY_CONFIG, backend=DEFAULT_BACKEND)
    return _registry


def get_orchestrator() -> PipelineOrchestrator:
    """Get or create the global orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = PipelineOrchestrator(
            model_client=ModelClient(),
            safety_config=SAFETY_CONFIG,
        )
    return _orchestrator


def set_registry(registry: SessionRegistry) -> None:
    """Set the global registry (for testing)."""
    global _registry
    _registry = registry


def set_orchestrator(orchestrator: PipelineOrchestrator) -> None:
    """Set the global orchestrator (for testing)."""
    global _orchestrator
    _orchestrator = orchestrator


def _session_not_found(session_id: str):
    logger.warning(
        "SESSION_NOT_FOUND",
        extra={"session_id_hash": hash_pii(session_id)}
    )
    return jsonify({"error": "Session not found"}), 404


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "chat-gateway",
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check."""
    if get_orchestrator() is None:
        return jsonify({"status": "not_ready"}), 503
    return jsonify({
        "status": "ready",
        "rules_version": SAFETY_CONFIG.rules_version,
    }), 200


@app.route("/hotlines", methods=["GET"])
def hotlines():
    """Quick-reference emergency numbers for the presentation layer."""
    return jsonify({
        "hotlines": [{"name": name, "number": number} for name, number in HOTLINES],
    }), 200


@app.route("/sessions", methods=["POST"])
def start_session():
    """Start a new isolated session.

    Response:
        {
            "session_id": "sess_abc123",
            "backend": {"base_url": "...", "model": "", ...}
        }
    """
    session = get_registry().start()
    return jsonify({
        "session_id": session.session_id,
        "backend": session.backend.to_dict(),
    }), 201


@app.route("/sessions/<session_id>", methods=["DELETE"])
def end_session(session_id: str):
    """End a session; its rate window, audit log and transcript are discarded."""
    try:
        session = get_registry().end(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    return jsonify({
        "session_id": session_id,
        "stats": session.stats.to_dict(),
    }), 200


@app.route("/sessions/<session_id>/turns", methods=["POST"])
def submit_turn(session_id: str):
    """Submit one user message through the safety pipeline.

    Request Body:
        {
            "message": "What are common causes of headaches?"
        }

    Response:
        TurnResult as JSON: outcome, states, user_turn, assistant_turn,
        threats, emergencies, redactions, disclaimers, ...
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "Request body required"}), 400

    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": "message must be a non-empty string"}), 400

    try:
        session = get_registry().get(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    try:
        result = asyncio.run(get_orchestrator().submit(session, message))
    except SessionBusyError as e:
        return jsonify({"error": str(e)}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(
            "TURN_SUBMIT_ERROR",
            extra={
                "session_id": session_id,
                "error": str(e),
                "error_type": type(e).__name__,
            }
        )
        return jsonify({"error": "Failed to process message"}), 500

    return jsonify(result.to_dict()), 200


@app.route("/sessions/<session_id>/config", methods=["PATCH"])
def update_config(session_id: str):
    """Replace backend settings for one session.

    Request Body (all optional):
        {
            "base_url": "http://127.0.0.1:1234/v1",
            "model": "llama-3-8b",
            "temperature": 0.5,
            "max_tokens": 800
        }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "Request body required"}), 400

    unknown = sorted(set(data) - set(CONFIG_FIELDS))
    if unknown:
        return jsonify({"error": f"Unknown settings: {', '.join(unknown)}"}), 400

    try:
        session = get_registry().get(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    try:
        backend = session.update_backend(**data)
    except (InvalidBackendConfigError, TypeError) as e:
        return jsonify({"error": str(e)}), 400

    session.audit.log(AuditEventType.CONFIG_CHANGED, {
        "changed": sorted(data),
        "backend": backend.to_dict(),
    })

    return jsonify({"backend": backend.to_dict()}), 200


@app.route("/sessions/<session_id>/models", methods=["GET"])
def list_models(session_id: str):
    """Check the backend connection and list available models."""
    try:
        session = get_registry().get(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    status = asyncio.run(get_orchestrator().check_connection(session))
    return jsonify({
        **status.to_dict(),
        "model": session.backend.model,
    }), 200


@app.route("/sessions/<session_id>/audit", methods=["GET"])
def export_audit(session_id: str):
    """Export the session's audit trail as an ordered JSON array."""
    try:
        session = get_registry().get(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    return app.response_class(
        session.audit.export(),
        status=200,
        mimetype="application/json",
    )


@app.route("/sessions/<session_id>/stats", methods=["GET"])
def session_stats(session_id: str):
    """Per-session counters."""
    try:
        session = get_registry().get(session_id)
    except SessionNotFoundError:
        return _session_not_found(session_id)

    return jsonify({
        "session_id": session_id,
        **session.stats.to_dict(),
        "connected": session.connected,
        "audit_entries": len(session.audit),
        "chain_valid": session.audit.verify_chain(),
    }), 200


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.getenv("PORT", "8080"))
    app.run(host="0.0.0.0", port=port, threaded=True)
