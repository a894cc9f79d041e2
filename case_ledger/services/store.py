"""
Persistent collection store for the Case Ledger.

A store is a durable map from a collection name ("cases", "clients",
"users") to the list of JSON-serializable records in that collection. It is
the only durability boundary of the application: every failure to read or
write is raised as PersistenceUnavailable and never swallowed.

Two backends are available:
- JsonFileStore keeps one JSON document per collection in a local directory
- PostgresStore keeps one JSONB row per collection in PostgreSQL
"""

import json
import os
import re
import tempfile
from typing import Any, Dict, List

import psycopg2
from psycopg2.extras import Json

from case_ledger.models.errors import PersistenceUnavailable
from case_ledger.services.database import DatabaseConnection, create_database_connection
from case_ledger.utils.logging_config import get_logger, log_store_operation

Records = List[Dict[str, Any]]

_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid collection key: {key!r}")
    return key


def _check_records(key: str, records: Any) -> Records:
    """Refuse a stored document that is not a list of JSON objects"""
    if not isinstance(records, list):
        raise PersistenceUnavailable("read", key, "collection document is not a list")
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise PersistenceUnavailable("read", key, f"collection entry {position} is not an object")
    return records


class CollectionStore:
    """Interface shared by the store backends"""

    backend = "abstract"

    def get(self, key: str) -> Records:
        """Return the records stored under key, or an empty list if never written"""
        raise NotImplementedError

    def put(self, key: str, records: Records) -> None:
        """Replace the records stored under key"""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Forget the collection stored under key; missing keys are ignored"""
        raise NotImplementedError

    def ping(self) -> bool:
        """Check that the backend is reachable, raising PersistenceUnavailable if not"""
        raise NotImplementedError


class JsonFileStore(CollectionStore):
    """Collections as JSON files under a local data directory"""

    backend = "file"

    def __init__(self, data_dir: str):
        self.data_dir = os.path.abspath(data_dir)
        self.logger = get_logger("store.file")

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{_check_key(key)}.json")

    def get(self, key: str) -> Records:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                records = json.load(fh)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            self.logger.error(
                "Failed to read collection",
                extra={"event": "store_read_failed", "key": key, "path": path, "error": str(e)},
            )
            raise PersistenceUnavailable("read", key, str(e)) from e

        _check_records(key, records)
        log_store_operation("get", key, count=len(records))
        return records

    def put(self, key: str, records: Records) -> None:
        path = self._path(key)
        tmp_path = None
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.data_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(
                "Failed to write collection",
                extra={"event": "store_write_failed", "key": key, "path": path, "error": str(e)},
            )
            raise PersistenceUnavailable("write", key, str(e)) from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

        log_store_operation("put", key, count=len(records))

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceUnavailable("delete", key, str(e)) from e
        log_store_operation("delete", key)

    def ping(self) -> bool:
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise PersistenceUnavailable("ping", None, str(e)) from e
        if not os.access(self.data_dir, os.R_OK | os.W_OK):
            raise PersistenceUnavailable("ping", None, f"data directory {self.data_dir} is not writable")
        return True


class PostgresStore(CollectionStore):
    """Collections as JSONB rows of the ledger_collections table"""

    backend = "postgresql"

    TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS ledger_collections (
        name VARCHAR(64) PRIMARY KEY,
        records JSONB NOT NULL DEFAULT '[]'::jsonb,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger("store.postgresql")

    def ensure_schema(self) -> None:
        try:
            self.db.execute_query(self.TABLE_DDL, fetch_all=False)
        except psycopg2.Error as e:
            raise PersistenceUnavailable("create schema", "ledger_collections", str(e)) from e

    def get(self, key: str) -> Records:
        try:
            row = self.db.execute_query(
                "SELECT records FROM ledger_collections WHERE name = %s", (_check_key(key),), fetch_one=True
            )
        except psycopg2.Error as e:
            raise PersistenceUnavailable("read", key, str(e)) from e

        if not row:
            return []
        records = row["records"]
        if isinstance(records, str):
            try:
                records = json.loads(records)
            except ValueError as e:
                raise PersistenceUnavailable("read", key, str(e)) from e
        _check_records(key, records)
        log_store_operation("get", key, count=len(records))
        return list(records)

    def put(self, key: str, records: Records) -> None:
        query = """
        INSERT INTO ledger_collections (name, records, updated_at)
        VALUES (%s, %s, CURRENT_TIMESTAMP)
        ON CONFLICT (name) DO UPDATE
            SET records = EXCLUDED.records, updated_at = CURRENT_TIMESTAMP
        """
        try:
            self.db.execute_query(query, (_check_key(key), Json(records)), fetch_all=False)
        except psycopg2.Error as e:
            raise PersistenceUnavailable("write", key, str(e)) from e
        log_store_operation("put", key, count=len(records))

    def delete(self, key: str) -> None:
        try:
            self.db.execute_query("DELETE FROM ledger_collections WHERE name = %s", (_check_key(key),), fetch_all=False)
        except psycopg2.Error as e:
            raise PersistenceUnavailable("delete", key, str(e)) from e
        log_store_operation("delete", key)

    def ping(self) -> bool:
        try:
            return self.db.test_connection()
        except psycopg2.Error as e:
            raise PersistenceUnavailable("ping", None, str(e)) from e


def create_store(config_class) -> CollectionStore:
    """
    Build the collection store selected by STORAGE_BACKEND.

    Args:
        config_class: Configuration class with storage settings

    Returns:
        JsonFileStore or PostgresStore
    """
    backend = getattr(config_class, "STORAGE_BACKEND", "file")
    if backend == "postgresql":
        return PostgresStore(create_database_connection(config_class))
    if backend == "file":
        return JsonFileStore(config_class.DATA_DIR)
    raise ValueError(f"Unsupported STORAGE_BACKEND '{backend}'")
