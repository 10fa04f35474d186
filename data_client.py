"""
Generic data-access client for the relational store.

Two interchangeable backends expose the same table operations:

* ``SupabaseClient`` talks to a hosted PostgREST API with ``requests``.
* ``LocalTableStore`` keeps one JSON file per table on disk, for development
  and tests.

Rows are plain dicts. Filters are equality matches (``{"project_id": pid}``);
``in_filters`` match any of several values (``{"scene_id": [a, b]}``).
"""

import os
import json
import copy
import uuid
import logging
import threading
from datetime import datetime, timezone

import requests

import config
from exceptions import DatabaseError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DataClient:
    """Table operations shared by every backend."""

    def select(self, table: str, filters: dict = None, order: str = None, descending: bool = False,
               limit: int = None, in_filters: dict = None) -> list:
        raise NotImplementedError

    def select_one(self, table: str, filters: dict) -> dict | None:
        rows = self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, rows) -> list:
        raise NotImplementedError

    def update(self, table: str, values: dict, filters: dict) -> list:
        raise NotImplementedError

    def delete(self, table: str, filters: dict = None, in_filters: dict = None) -> list:
        raise NotImplementedError

    def upsert(self, table: str, row: dict, on_conflict: tuple) -> dict:
        raise NotImplementedError

    def invoke(self, function_name: str, body: dict) -> dict:
        raise NotImplementedError(f"{type(self).__name__} cannot invoke functions")


class SupabaseClient(DataClient):
    """PostgREST client for a hosted Supabase project."""

    def __init__(self, url: str, api_key: str, timeout: float = config.REQUEST_TIMEOUT, session: requests.Session = None):
        if not url or not api_key:
            raise ValueError("Supabase URL and API key are required.")
        self.base_url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    @staticmethod
    def _format_value(value) -> str:
        if value is None:
            return "is.null"
        if isinstance(value, bool):
            return f"is.{str(value).lower()}"
        return f"eq.{value}"

    @staticmethod
    def _format_in(values) -> str:
        quoted = ",".join('"{}"'.format(str(v).replace('"', '\\"')) for v in values)
        return f"in.({quoted})"

    def _params(self, filters: dict = None, in_filters: dict = None) -> dict:
        params = {}
        for column, value in (filters or {}).items():
            params[column] = self._format_value(value)
        for column, values in (in_filters or {}).items():
            params[column] = self._format_in(values)
        return params

    def _request(self, method: str, path: str, params: dict = None, payload=None, prefer: str = None):
        url = f"{self.base_url}{path}"
        headers = {"Prefer": prefer} if prefer else {}
        try:
            response = self.session.request(method, url, params=params, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            detail = ""
            try:
                body = e.response.json()
                detail = body.get("message") or body.get("error") or str(body)
            except ValueError:
                detail = e.response.text[:200]
            logger.error(f"Supabase {method} {path} failed ({e.response.status_code}): {detail}")
            raise DatabaseError(f"Database request failed: {detail or e}", e) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Supabase {method} {path} failed: {e}")
            raise DatabaseError(f"Database request failed: {e}", e) from e

        if not response.content:
            return None
        return response.json()

    def select(self, table, filters=None, order=None, descending=False, limit=None, in_filters=None):
        params = self._params(filters, in_filters)
        params["select"] = "*"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        if in_filters and any(not values for values in in_filters.values()):
            return []
        return self._request("GET", f"/rest/v1/{table}", params=params) or []

    def insert(self, table, rows):
        payload = rows if isinstance(rows, list) else [rows]
        if not payload:
            return []
        return self._request("POST", f"/rest/v1/{table}", payload=payload, prefer="return=representation") or []

    def update(self, table, values, filters):
        if not filters:
            raise ValueError("Refusing to update without filters.")
        values = dict(values, updated_at=_now())
        return self._request("PATCH", f"/rest/v1/{table}", params=self._params(filters),
                             payload=values, prefer="return=representation") or []

    def delete(self, table, filters=None, in_filters=None):
        if not filters and not in_filters:
            raise ValueError("Refusing to delete without filters.")
        if in_filters and any(not values for values in in_filters.values()):
            return []
        return self._request("DELETE", f"/rest/v1/{table}", params=self._params(filters, in_filters),
                             prefer="return=representation") or []

    def upsert(self, table, row, on_conflict):
        rows = self._request("POST", f"/rest/v1/{table}", params={"on_conflict": ",".join(on_conflict)},
                             payload=[row], prefer="resolution=merge-duplicates,return=representation") or []
        return rows[0] if rows else row

    def invoke(self, function_name, body):
        """Calls a deployed edge function by name."""
        return self._request("POST", f"/functions/v1/{function_name}", payload=body) or {}


class LocalTableStore(DataClient):
    """Keeps each table as a JSON list in ``<base_dir>/<table>.json``."""

    def __init__(self, base_dir: str = config.DATA_DIR):
        self.base_dir = base_dir
        self._lock = threading.RLock()

    def _table_path(self, table: str) -> str:
        if not table or not table.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {table!r}")
        return os.path.join(self.base_dir, f"{table}.json")

    def _load(self, table: str) -> list:
        path = self._table_path(table)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading table '{table}': {e}")
            raise DatabaseError(f"Invalid table file for '{table}'.", e) from e

    def _save(self, table: str, rows: list):
        path = self._table_path(table)
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            tmp_path = f"{path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=4, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing table '{table}': {e}")
            raise DatabaseError(f"Error saving table '{table}': {e}", e) from e

    @staticmethod
    def _matches(row: dict, filters: dict = None, in_filters: dict = None) -> bool:
        for column, value in (filters or {}).items():
            if row.get(column) != value:
                return False
        for column, values in (in_filters or {}).items():
            if row.get(column) not in values:
                return False
        return True

    def select(self, table, filters=None, order=None, descending=False, limit=None, in_filters=None):
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._load(table) if self._matches(r, filters, in_filters)]
        if order:
            # Nulls sort last, like Postgres ascending order
            present = [r for r in rows if r.get(order) is not None]
            missing = [r for r in rows if r.get(order) is None]
            rows = sorted(present, key=lambda r: r[order], reverse=descending) + missing
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table, rows):
        new_rows = rows if isinstance(rows, list) else [rows]
        timestamp = _now()
        with self._lock:
            existing = self._load(table)
            inserted = []
            for row in new_rows:
                record = dict(row)
                record.setdefault("id", str(uuid.uuid4()))
                record.setdefault("created_at", timestamp)
                record.setdefault("updated_at", timestamp)
                existing.append(record)
                inserted.append(copy.deepcopy(record))
            self._save(table, existing)
        return inserted

    def update(self, table, values, filters):
        if not filters:
            raise ValueError("Refusing to update without filters.")
        with self._lock:
            rows = self._load(table)
            updated = []
            for row in rows:
                if self._matches(row, filters):
                    row.update(values)
                    row["updated_at"] = _now()
                    updated.append(copy.deepcopy(row))
            if updated:
                self._save(table, rows)
        return updated

    def delete(self, table, filters=None, in_filters=None):
        if not filters and not in_filters:
            raise ValueError("Refusing to delete without filters.")
        with self._lock:
            rows = self._load(table)
            kept = [r for r in rows if not self._matches(r, filters, in_filters)]
            removed = [r for r in rows if self._matches(r, filters, in_filters)]
            if removed:
                self._save(table, kept)
        return removed

    def upsert(self, table, row, on_conflict):
        key = {column: row.get(column) for column in on_conflict}
        with self._lock:
            existing = self.select(table, filters=key, limit=1)
            if existing:
                values = {k: v for k, v in row.items() if k not in on_conflict}
                return self.update(table, values, key)[0]
            return self.insert(table, row)[0]


def create_data_client() -> DataClient:
    """Hosted store when Supabase credentials are configured, local files otherwise."""
    if config.SUPABASE_URL and config.SUPABASE_SERVICE_ROLE_KEY:
        logger.info(f"Using Supabase data store at {config.SUPABASE_URL}")
        return SupabaseClient(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    logger.info(f"Using local table store in '{config.DATA_DIR}'")
    return LocalTableStore(config.DATA_DIR)
