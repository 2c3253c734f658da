# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Front end
    "TASKFLOW_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    "TASKFLOW_OFFLINE": "Use the offline demo AI client even if an API key is set (true/false).",
    # LLM / OpenRouter
    "TASKFLOW_OPENROUTER_API_KEY": "OpenRouter API key. Without it the offline demo client is used.",
    "TASKFLOW_OPENROUTER_BASE_URL": "OpenAI-compatible base URL (default: https://openrouter.ai/api/v1).",
    "TASKFLOW_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "TASKFLOW_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "TASKFLOW_APP_TITLE": "Optional OpenRouter metadata header title.",
    "TASKFLOW_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "TASKFLOW_LLM_READ_TIMEOUT_SECONDS": "Read timeout, never below the first-token timeout (default: 25).",
    "TASKFLOW_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Give up on a model without content after this long (default: 20).",
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory for the store and log file (default: .local/taskflow).",
    "TASKFLOW_STORE_PATH": "SQLite record store path (default: <data_dir>/taskflow.sqlite3).",
}
