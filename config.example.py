# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TODOCAN_APP_NAME": "App display name (default: todocan).",
    "TODOCAN_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TODOCAN_DATA_DIR": "Local data directory for the database and logs (default: .local/todocan).",
    "TODOCAN_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Gemini
    "GEMINI_API_KEY": "Gemini API key (required only for /api/todos/ai and /api/gemini/models).",
    "TODOCAN_GEMINI_API_KEY": "Same as GEMINI_API_KEY; takes precedence when both are set.",
    "TODOCAN_GEMINI_BASE_URL": (
        "Gemini REST base URL (default: https://generativelanguage.googleapis.com/v1beta)."
    ),
    "TODOCAN_GEMINI_FALLBACK_MODELS": (
        "Comma/space separated models always tried after the catalog pick "
        "(default: models/gemini-2.0-flash models/gemini-1.5-flash)."
    ),
    "TODOCAN_GEMINI_CONNECT_TIMEOUT_SECONDS": "Connect timeout per Gemini call (default: 5).",
    "TODOCAN_GEMINI_READ_TIMEOUT_SECONDS": "Read timeout per Gemini call (default: 30).",
    # Auth
    "TODOCAN_API_TOKENS": "Comma separated token:user_id pairs accepted as Bearer tokens.",
    "TODOCAN_ADMIN_USERS": "User ids granted the admin role at startup (see debug payloads).",
    # HTTP
    "TODOCAN_HTTP_HOST": "Bind host (default: 127.0.0.1).",
    "TODOCAN_HTTP_PORT": "Bind port (default: 8000).",
}
