# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "STUDY_APP_NAME": "App display name (default: study-tracker).",
    "STUDY_LOG_LEVEL": "Console logging level (default: INFO). The file log is always DEBUG.",
    # Identity
    "STUDY_USER_ID": "User id every task is scoped to (default: local).",
    # Paths (gitignored)
    "STUDY_DATA_DIR": "Local data directory (default: .local/study).",
    "STUDY_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "STUDY_TIMERS_PATH": "Timer snapshot JSON path (default: <data_dir>/timers.json).",
    # Timers
    "STUDY_TIMER_RETENTION_SECONDS": "Snapshots older than this are discarded (default: 3600).",
    "STUDY_POLL_INTERVAL_MS": "Display refresh interval for /watch (default: 100).",
}
