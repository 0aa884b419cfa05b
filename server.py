"""
DataViz Chat: WooCommerce store-data assistant backend.
Runs on port 5009.

Usage:
    python server.py

Endpoints:
    POST http://localhost:5009/chat
    POST http://localhost:5009/chat/stream
    GET  http://localhost:5009/history/<session_id>
    GET  http://localhost:5009/feature-requests
    POST http://localhost:5009/feature-requests/<request_id>/status
    GET  http://localhost:5009/health
"""

from flask import Flask
from flask_cors import CORS

# ─── Internal imports ───
from chat_service import ChatService
from tool_executor import ToolExecutor
from orchestrator import LLMOrchestrator
from llm_client import LLMClient
from services import WooClient, WooDataAccess
from core import HistoryStore, FeatureRequestStore
from routes.chat import chat_bp, EXTENSION_KEY
from config.settings import (
    PORT, DEBUG, LLM_STREAMING_ENABLED, WOO_BASE_URL, HISTORY_MAX_AGE_DAYS,
)
from chat_logger import get_logger, sanitize_url

logger = get_logger("dataviz_chat")


# ═══════════════════════════════════════════
# WIRING
# ═══════════════════════════════════════════

def build_chat_service(history: HistoryStore, feature_requests: FeatureRequestStore) -> ChatService:
    """Default collaborators: WooCommerce REST data, and the chat model when a key is set."""
    executor = ToolExecutor(WooDataAccess(WooClient()), feature_requests)
    llm = LLMClient()
    orchestrator = None
    if llm.is_configured:
        orchestrator = LLMOrchestrator(llm, executor, streaming=LLM_STREAMING_ENABLED)
    else:
        logger.warning("No LLM API key configured | answers use templates and keyword rules")
    return ChatService(executor, history, orchestrator)


def create_app(chat_service=None, history=None, feature_requests=None) -> Flask:
    history = history or HistoryStore(retention_days=HISTORY_MAX_AGE_DAYS)
    feature_requests = feature_requests or FeatureRequestStore()
    if chat_service is None:
        chat_service = build_chat_service(history, feature_requests)

    app = Flask(__name__)
    CORS(app)
    app.extensions[EXTENSION_KEY] = {
        "service": chat_service,
        "history": history,
        "feature_requests": feature_requests,
    }
    app.register_blueprint(chat_bp)

    logger.info(
        f"App created | store={sanitize_url(WOO_BASE_URL) or 'unset'} | provider={chat_service.provider} | "
        f"modes={chat_service.tool_selection_mode}/{chat_service.answer_mode}"
    )
    return app


# ═══════════════════════════════════════════
# STARTUP
# ═══════════════════════════════════════════

if __name__ == "__main__":
    print("=" * 60)
    print("  DataViz Chat - Store Data Assistant")
    print("=" * 60)
    print()
    print(f"🚀 Starting server on http://localhost:{PORT}")
    print(f"   POST http://localhost:{PORT}/chat")
    print(f"   POST http://localhost:{PORT}/chat/stream")
    print(f"   GET  http://localhost:{PORT}/feature-requests")
    print(f"   GET  http://localhost:{PORT}/health")
    print()

    app = create_app()
    app.run(
        host="0.0.0.0",
        port=PORT,
        debug=DEBUG,
    )
