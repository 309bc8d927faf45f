"""
Persistent store for AI configurations and per-user credentials.
Uses SQLite with thread-local connections.
"""
import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import List, Optional

from config import Config
from models.gateway_models import AIConfiguration, SecretPlacement, UserCredential
from utils.exceptions import ConfigNotFoundError
from utils.logger import app_logger

JSON_COLUMNS = ("request_template", "response_template_example", "extra_headers")

CONFIG_COLUMNS = (
    "owner_id", "name", "endpoint_url", "secret", "secret_placement",
    "custom_header_name", "secret_body_path", "model_name", "request_template",
    "response_template_example", "message_list_path", "role_field_path",
    "text_field_path", "response_text_path", "response_thinking_path",
    "user_role_value", "assistant_role_value", "system_role_value",
    "extra_headers", "is_available", "last_used_at", "is_system_default",
    "created_at", "updated_at",
)


class ConfigStore:
    """
    SQLite-backed storage for AIConfiguration and UserCredential records.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (default: Config.DB_PATH)
        """
        if db_path is None:
            db_path = Config.DB_PATH
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._db_path = db_path
        self._local = threading.local()
        self._init_db()

        app_logger.info(f"Config store initialized with SQLite: {self._db_path}")

    def _get_conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'conn'):
            self._local.conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_conn()
        cursor = conn.cursor()

        # WAL mode for better concurrent read/write performance
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS ai_configs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                endpoint_url TEXT NOT NULL,
                secret TEXT,
                secret_placement TEXT NOT NULL DEFAULT 'header',
                custom_header_name TEXT,
                secret_body_path TEXT,
                model_name TEXT NOT NULL DEFAULT '',
                request_template TEXT NOT NULL,
                response_template_example TEXT,
                message_list_path TEXT,
                role_field_path TEXT NOT NULL,
                text_field_path TEXT NOT NULL,
                response_text_path TEXT NOT NULL,
                response_thinking_path TEXT,
                user_role_value TEXT NOT NULL,
                assistant_role_value TEXT NOT NULL,
                system_role_value TEXT NOT NULL,
                extra_headers TEXT NOT NULL,
                is_available INTEGER NOT NULL DEFAULT 0,
                last_used_at REAL,
                is_system_default INTEGER NOT NULL DEFAULT 0,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # indexes for availability lookups
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_owner_available
            ON ai_configs(owner_id, is_available)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_owner_last_used
            ON ai_configs(owner_id, last_used_at)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_credentials (
                owner_id TEXT PRIMARY KEY,
                use_custom_secret INTEGER NOT NULL DEFAULT 0,
                secret TEXT,
                updated_at REAL NOT NULL
            )
        """)

        conn.commit()

    @staticmethod
    def _serialize_config(config: AIConfiguration) -> tuple:
        """Serialize configuration for database storage, in CONFIG_COLUMNS order."""
        values = []
        for column in CONFIG_COLUMNS:
            value = getattr(config, column)
            if column in JSON_COLUMNS:
                value = json.dumps(value) if value is not None else None
            elif column == "secret_placement":
                value = value.value
            elif column in ("is_available", "is_system_default"):
                value = int(bool(value))
            values.append(value)
        return tuple(values)

    @staticmethod
    def _deserialize_config(row: sqlite3.Row) -> AIConfiguration:
        """Deserialize configuration from database row."""
        data = dict(row)
        for column in JSON_COLUMNS:
            if data[column] is not None:
                data[column] = json.loads(data[column])
        data["secret_placement"] = SecretPlacement(data["secret_placement"])
        data["is_available"] = bool(data["is_available"])
        data["is_system_default"] = bool(data["is_system_default"])
        return AIConfiguration(**data)

    def create(self, config: AIConfiguration) -> AIConfiguration:
        """
        Insert a configuration.

        Returns:
            The configuration with its assigned id
        """
        config.touch()
        conn = self._get_conn()
        cursor = conn.cursor()

        placeholders = ", ".join("?" for _ in CONFIG_COLUMNS)
        cursor.execute(
            f"INSERT INTO ai_configs ({', '.join(CONFIG_COLUMNS)}) VALUES ({placeholders})",
            self._serialize_config(config)
        )
        conn.commit()

        config.id = cursor.lastrowid
        app_logger.info(f"Config created: {config.id} | owner={config.owner_id} | '{config.name}'")
        return config

    def get(self, config_id: int, owner_id: Optional[str] = None) -> Optional[AIConfiguration]:
        """Get a configuration by id, optionally scoped to an owner."""
        cursor = self._get_conn().cursor()
        if owner_id is None:
            cursor.execute("SELECT * FROM ai_configs WHERE id = ?", (config_id,))
        else:
            cursor.execute("SELECT * FROM ai_configs WHERE id = ? AND owner_id = ?", (config_id, owner_id))

        row = cursor.fetchone()
        return self._deserialize_config(row) if row else None

    def require(self, config_id: int, owner_id: str) -> AIConfiguration:
        config = self.get(config_id, owner_id)
        if config is None:
            raise ConfigNotFoundError(f"AI configuration {config_id} not found")
        return config

    def list_for_owner(self, owner_id: str) -> List[AIConfiguration]:
        """All configurations of an owner, most recently used first."""
        cursor = self._get_conn().cursor()
        cursor.execute("""
            SELECT * FROM ai_configs
            WHERE owner_id = ?
            ORDER BY last_used_at IS NULL, last_used_at DESC, id DESC
        """, (owner_id,))
        return [self._deserialize_config(row) for row in cursor.fetchall()]

    def update(self, config: AIConfiguration) -> AIConfiguration:
        """
        Persist all fields of an existing configuration.
        Availability is reset: an edited configuration is untested.
        """
        if config.id is None:
            raise ConfigNotFoundError("Cannot update a configuration without id")

        config.reset_availability()
        config.touch()
        assignments = ", ".join(f"{column} = ?" for column in CONFIG_COLUMNS)

        conn = self._get_conn()
        cursor = conn.cursor()
        cursor.execute(
            f"UPDATE ai_configs SET {assignments} WHERE id = ? AND owner_id = ?",
            self._serialize_config(config) + (config.id, config.owner_id)
        )
        conn.commit()

        if cursor.rowcount == 0:
            raise ConfigNotFoundError(f"AI configuration {config.id} not found")

        app_logger.info(f"Config updated: {config.id} | owner={config.owner_id}")
        return config

    def delete(self, config_id: int, owner_id: str) -> bool:
        conn = self._get_conn()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM ai_configs WHERE id = ? AND owner_id = ?", (config_id, owner_id))
        conn.commit()

        deleted = cursor.rowcount > 0
        if deleted:
            app_logger.info(f"Config deleted: {config_id} | owner={owner_id}")
        return deleted

    def find_available(self, owner_id: str) -> Optional[AIConfiguration]:
        """Most recently used available configuration of an owner."""
        cursor = self._get_conn().cursor()
        cursor.execute("""
            SELECT * FROM ai_configs
            WHERE owner_id = ? AND is_available = 1
            ORDER BY last_used_at DESC, id DESC
            LIMIT 1
        """, (owner_id,))

        row = cursor.fetchone()
        return self._deserialize_config(row) if row else None

    def find_system_default(self, owner_id: str) -> Optional[AIConfiguration]:
        cursor = self._get_conn().cursor()
        cursor.execute("""
            SELECT * FROM ai_configs
            WHERE owner_id = ? AND is_system_default = 1
            ORDER BY id ASC
            LIMIT 1
        """, (owner_id,))

        row = cursor.fetchone()
        return self._deserialize_config(row) if row else None

    def mark_usage(self, config_id: int, available: bool, used_at: Optional[float] = None) -> float:
        """
        Record a call outcome.
        Both fields are written by one statement; concurrent writers resolve last-writer-wins.

        Returns:
            The timestamp written
        """
        used_at = used_at if used_at is not None else time.time()
        conn = self._get_conn()
        conn.execute(
            "UPDATE ai_configs SET is_available = ?, last_used_at = ? WHERE id = ?",
            (int(available), used_at, config_id)
        )
        conn.commit()
        app_logger.debug(f"Config {config_id} marked {'available' if available else 'unavailable'}")
        return used_at

    def get_credential(self, owner_id: str) -> UserCredential:
        """Account-level secret settings; defaults when the user never set any."""
        cursor = self._get_conn().cursor()
        cursor.execute("SELECT * FROM user_credentials WHERE owner_id = ?", (owner_id,))

        row = cursor.fetchone()
        if not row:
            return UserCredential(owner_id=owner_id)

        return UserCredential(
            owner_id=row["owner_id"],
            use_custom_secret=bool(row["use_custom_secret"]),
            secret=row["secret"],
            updated_at=row["updated_at"]
        )

    def set_credential(self, credential: UserCredential) -> UserCredential:
        credential.updated_at = time.time()
        conn = self._get_conn()
        conn.execute("""
            INSERT OR REPLACE INTO user_credentials (owner_id, use_custom_secret, secret, updated_at)
            VALUES (?, ?, ?, ?)
        """, (credential.owner_id, int(credential.use_custom_secret), credential.secret, credential.updated_at))
        conn.commit()
        app_logger.info(f"Credential settings updated: owner={credential.owner_id} | custom={credential.use_custom_secret}")
        return credential

    def clear(self) -> None:
        """Remove all records."""
        conn = self._get_conn()
        conn.execute("DELETE FROM ai_configs")
        conn.execute("DELETE FROM user_credentials")
        conn.commit()
        app_logger.info("Config store cleared")


_config_store: Optional[ConfigStore] = None
_store_lock = threading.Lock()


def get_config_store() -> ConfigStore:
    """Get the global config store instance."""
    global _config_store
    if _config_store is None:
        with _store_lock:
            if _config_store is None:
                _config_store = ConfigStore()
    return _config_store
