"""Static configuration for the integrity tools.

All user-editable settings (resolver tuning, link check limits, schedule,
notifications, logging) live in a single JSON file for quick edits without
touching Python. Secrets stay in the environment.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config path can be overridden so deployments keep their own copy.
CONFIG_PATH = os.getenv("INTEGRITY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Content backend. WORDPRESS_API_URL wins over the config file.
_wordpress = _CONFIG.get("wordpress", {})
WORDPRESS_API_BASE = os.getenv("WORDPRESS_API_URL") or _wordpress.get(
    "api_base", "https://public-api.wordpress.com/wp/v2/sites/medialternatives.wordpress.com"
)
WORDPRESS_TIMEOUT = float(_wordpress.get("timeout_seconds", 15))
WORDPRESS_PER_PAGE = int(_wordpress.get("per_page", 10))

# Legacy URL resolver tuning. Threshold and window are defaults, not contracts.
_resolver = _CONFIG.get("resolver", {})
ACCEPTANCE_THRESHOLD = int(_resolver.get("acceptance_threshold", 60))
DATE_WINDOW_DAYS = int(_resolver.get("date_window_days", 3))
SEARCH_CONFIDENCE = int(_resolver.get("search_confidence", 55))
SLUG_VARIANTS = bool(_resolver.get("slug_variants", False))
KNOWN_MAPPINGS = dict(_resolver.get("known_mappings", {}))

# Link checking: worker pool, per-request timeout and retry policy.
_link_check = _CONFIG.get("link_check", {})
CONCURRENCY = int(_link_check.get("concurrency", 5))
REQUEST_TIMEOUT = float(_link_check.get("timeout_seconds", 10))
MAX_RETRIES = int(_link_check.get("max_retries", 2))
BACKOFF_BASE_SECONDS = float(_link_check.get("backoff_base_seconds", 0.5))
CONTEXT_CHARS = int(_link_check.get("context_chars", 50))
INTERNAL_HOSTS = tuple(_link_check.get("internal_hosts", []))
SCAN_PLAIN_URLS = bool(_link_check.get("scan_plain_urls", False))
DEADLINE_SECONDS = _link_check.get("deadline_seconds")
CACHE_TTL_SECONDS = float(_link_check.get("cache_ttl_seconds", 0))
FALLBACK_SUGGESTIONS = bool(_link_check.get("fallback_suggestions", False))
USER_AGENT = _link_check.get("user_agent", "")

# Safety caps for constrained environments; callers may lower them.
_limits = _CONFIG.get("limits", {})
MAX_POSTS = int(_limits.get("max_posts", 5))
MAX_LINKS_PER_POST = _limits.get("max_links_per_post")
MAX_LINKS = _limits.get("max_links")

# Batch check invocations per caller per window.
_rate_limit = _CONFIG.get("rate_limit", {})
RATE_LIMIT_WINDOW_SECONDS = float(_rate_limit.get("window_seconds", 3600))
RATE_LIMIT_MAX_REQUESTS = int(_rate_limit.get("max_requests", 10))

# Scheduled checks run from cron via `integrity scheduled`.
SCHEDULE = _CONFIG.get("schedule", {})

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("method", "none")
# Bot chat id is only required when method=telegram_bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")
NOTIFICATION_MAX_ITEMS = int(_notifications.get("max_items", 20))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
