"""
Service configuration: loads credentials and feature flags from .env file.
"""

import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

# ─────────────────────────────────────────────
# WooCommerce API
# ─────────────────────────────────────────────
WOO_BASE_URL = os.getenv("WOO_BASE_URL", "")          # e.g. https://shop.example.com/wp-json/wc/v3
WOO_CONSUMER_KEY = os.getenv("WOO_CONSUMER_KEY", "")
WOO_CONSUMER_SECRET = os.getenv("WOO_CONSUMER_SECRET", "")

# ─────────────────────────────────────────────
# API Defaults
# ─────────────────────────────────────────────
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", 30))  # seconds
WOO_MAX_PER_PAGE = 100                                    # REST API page cap
PAID_ORDER_STATUSES = ["completed", "processing", "on-hold"]

DEFAULT_ORDER_LIMIT = 20
DEFAULT_PRODUCT_LIMIT = 10
DEFAULT_CUSTOMER_LIMIT = 10
DEFAULT_COUPON_LIMIT = 50
DEFAULT_REFUND_LIMIT = 50
DEFAULT_INVENTORY_LIMIT = 100
DEFAULT_STOCK_THRESHOLD = 10
DEFAULT_SAMPLE_SIZE = 100

# ─────────────────────────────────────────────
# App Settings
# ─────────────────────────────────────────────
PORT = int(os.getenv("PORT", 5009))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# rules: keyword dispatcher picks tools; llm: the model picks tools
TOOL_SELECTION_MODE = os.getenv("TOOL_SELECTION_MODE", "llm").lower()
# llm: model writes the answer; template: deterministic text from tool results
ANSWER_MODE = os.getenv("ANSWER_MODE", "llm").lower()

HISTORY_MAX_AGE_DAYS = int(os.getenv("HISTORY_MAX_AGE_DAYS", 5))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", 50))
# An unconfirmed feature-request offer expires after this many seconds
PENDING_REQUEST_TTL_SECONDS = int(os.getenv("PENDING_REQUEST_TTL_SECONDS", 3600))

# ─────────────────────────────────────────────
# LLM
# ─────────────────────────────────────────────
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai, azure_openai, copilot
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "")
COPILOT_API_TOKEN = os.getenv("COPILOT_API_TOKEN", "")

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.6"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
LLM_STREAMING_ENABLED = os.getenv("LLM_STREAMING_ENABLED", "true").lower() == "true"

# ─────────────────────────────────────────────
# HTTP Headers
# ─────────────────────────────────────────────
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}

# Cost estimation (USD per 1000 tokens)
LLM_COST_PER_1K_INPUT = float(os.getenv("LLM_COST_PER_1K_INPUT", "0.00015"))
LLM_COST_PER_1K_OUTPUT = float(os.getenv("LLM_COST_PER_1K_OUTPUT", "0.0006"))
