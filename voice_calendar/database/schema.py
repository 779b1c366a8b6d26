"""Database schema definitions for Voice Calendar.

The local store is a flat key-value namespace. Each key holds one
JSON-serialized value, mirroring how a single browser profile would keep them.
"""

CREATE_LOCAL_STORE_TABLE = """
CREATE TABLE IF NOT EXISTS local_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

ALL_TABLES = [
    CREATE_LOCAL_STORE_TABLE,
]

# --- Persisted keys ---
TASKS_KEY = "calendar_tasks"
CACHED_EVENTS_KEY = "cached_calendar_events"
NOTIFICATIONS_KEY = "notification_alerts"
SETTINGS_KEY = "app_settings"
GOOGLE_CREDENTIALS_KEY = "google_credentials"
GOOGLE_ACCESS_TOKEN_KEY = "google_access_token"
GOOGLE_REFRESH_TOKEN_KEY = "google_refresh_token"
VOICE_AGENT_CREDENTIALS_KEY = "voice_agent_credentials"
