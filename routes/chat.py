"""
Chat endpoints as a Flask Blueprint.
"""

import time
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from errors import ChatError, InputError, ConfigurationError, UpstreamError
from services.stream_relay import format_sse
from core import REQUEST_STATUSES
from config.settings import HISTORY_LIMIT, HISTORY_MAX_AGE_DAYS
from chat_logger import get_logger, sanitize_log_string

logger = get_logger("dataviz_chat")

chat_bp = Blueprint("chat", __name__)

EXTENSION_KEY = "dataviz_chat"
MAX_HISTORY_LIMIT = 200


def _services() -> dict:
    return current_app.extensions[EXTENSION_KEY]


def _status_for(error: ChatError) -> int:
    if isinstance(error, InputError):
        return 400
    if isinstance(error, ConfigurationError):
        return 503
    if isinstance(error, UpstreamError):
        return 502
    return 500


def _error_response(error: ChatError, session_id: str = ""):
    status = _status_for(error)
    logger.error(f"Request failed | status={status} | error_type={error.error_type} | error={str(error)}")
    return jsonify({
        "success": False,
        "answer": str(error),
        "error": error.error_type,
        "session_id": session_id,
        "metadata": error.to_dict(),
    }), status


def _parse_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InputError("Invalid request. Send JSON with a 'message' field.")
    return (
        str(body.get("message") or ""),
        str(body.get("session_id") or ""),
        str(body.get("user_id") or ""),
    )


@chat_bp.route("/chat", methods=["POST"])
def chat():
    """
    Answer one question.

    Request:
        POST /chat
        {"message": "how many orders last week?", "session_id": "session_xxx", "user_id": "7"}

    Response:
        {
            "success": true,
            "answer": "...",
            "provider": "openai",
            "operations_used": ["get_woocommerce_data"],
            "session_id": "...",
            "metadata": {...}
        }
    """
    start_time = time.time()
    session_id = ""
    try:
        message, session_id, user_id = _parse_body()
        logger.info(
            f'POST /chat | session={session_id} | message="{sanitize_log_string(message[:100])}"'
        )
        reply = _services()["service"].ask(message, session_id=session_id, user_id=user_id)
    except ChatError as e:
        return _error_response(e, session_id)

    metadata = dict(reply.metadata)
    metadata["response_time_ms"] = int((time.time() - start_time) * 1000)
    logger.info(
        f"Step 5: Response sent | provider={reply.provider} | "
        f"operations={reply.operations_used} | response_time_ms={metadata['response_time_ms']}"
    )
    return jsonify({
        "success": True,
        "answer": reply.answer,
        "provider": reply.provider,
        "operations_used": reply.operations_used,
        "session_id": metadata.pop("session_id", session_id),
        "metadata": metadata,
    }), 200


@chat_bp.route("/chat/stream", methods=["POST"])
def chat_stream():
    """Answer one question as a text/event-stream of `data:` events ending in [DONE]."""
    session_id = ""
    try:
        message, session_id, user_id = _parse_body()
        logger.info(
            f'POST /chat/stream | session={session_id} | message="{sanitize_log_string(message[:100])}"'
        )
        chunks = _services()["service"].stream(message, session_id=session_id, user_id=user_id)
    except ChatError as e:
        return _error_response(e, session_id)

    def generate():
        for chunk in chunks:
            yield format_sse(chunk)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@chat_bp.route("/history/<session_id>", methods=["GET"])
def history(session_id):
    """Recent turns for a session, oldest first."""
    limit = request.args.get("limit", HISTORY_LIMIT, type=int)
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    messages = _services()["history"].recent(session_id, limit, HISTORY_MAX_AGE_DAYS)
    return jsonify({"session_id": session_id, "messages": messages, "count": len(messages)})


@chat_bp.route("/feature-requests", methods=["GET"])
def feature_requests():
    status = request.args.get("status", "all")
    limit = request.args.get("limit", 50, type=int)
    store = _services()["feature_requests"]
    requests_ = store.get_requests(status=status, limit=max(1, limit))
    return jsonify({"feature_requests": requests_, "count": len(requests_)})


@chat_bp.route("/feature-requests/<int:request_id>/status", methods=["POST"])
def feature_request_status(request_id):
    """
    Move a feature request through the review workflow.

    Request:
        POST /feature-requests/3/status
        {"status": "approved"}
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    status = str(body.get("status") or "").strip().lower()
    if status not in REQUEST_STATUSES:
        return _error_response(InputError(
            f"Invalid status. Use one of: {', '.join(REQUEST_STATUSES)}."
        ))

    store = _services()["feature_requests"]
    if not store.update_status(request_id, status):
        return jsonify({"success": False, "error": "not_found", "request_id": request_id}), 404
    logger.info(f"Feature request status updated | id={request_id} | status={status}")
    return jsonify({"success": True, "feature_request": store.get_request(request_id)})


@chat_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    service = _services()["service"]
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "provider": service.provider,
        "tool_selection_mode": service.tool_selection_mode,
        "answer_mode": service.answer_mode,
    })
