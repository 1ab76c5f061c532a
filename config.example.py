# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "PUNCHLIST_APP_NAME": "App display name (default: punchlist).",
    "PUNCHLIST_LOG_LEVEL": "File log level (default: INFO). The console only shows warnings.",
    # Document store
    "PUNCHLIST_APP_ID": (
        "Deployment namespace; units live in artifacts/<app_id>/public/data/units "
        "(default: default-app-id)."
    ),
    "PUNCHLIST_STORE_BACKEND": "memory | sqlite (default: sqlite).",
    "PUNCHLIST_DATA_DIR": "Local data directory (default: .local/punchlist).",
    "PUNCHLIST_STORE_DB_PATH": "SQLite document store path (default: <data_dir>/documents.sqlite3).",
    "PUNCHLIST_STORE_POLL_SECONDS": "How often the sqlite store checks for changes made by other processes (default: 0.5).",
    # Identity
    "PUNCHLIST_AUTH_TOKEN": "Optional sign-in token; anonymous sign-in when unset.",
    # Task suggestions
    "PUNCHLIST_SUGGEST_PROVIDER": "gemini | openrouter | offline (default: gemini).",
    "PUNCHLIST_SUGGEST_TIMEOUT_SECONDS": "Optional request timeout; no timeout when unset.",
    "PUNCHLIST_GEMINI_API_KEY": "Gemini API key (required for the gemini provider).",
    "PUNCHLIST_GEMINI_BASE_URL": (
        "Gemini API base URL (default: https://generativelanguage.googleapis.com/v1beta)."
    ),
    "PUNCHLIST_GEMINI_MODEL": "Gemini model (default: gemini-2.0-flash).",
    "PUNCHLIST_OPENROUTER_API_KEY": "OpenRouter API key (required for the openrouter provider).",
    "PUNCHLIST_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "PUNCHLIST_OPENROUTER_MODEL": "Model used for suggestions via OpenRouter.",
    "PUNCHLIST_HTTP_REFERER": "Optional OpenRouter metadata header.",
    # Shareable links
    "PUNCHLIST_PUBLIC_URL": "Base URL used for ?unitId= share links (default: http://localhost:8000/).",
}
