from __future__ import annotations

"""
Key-value store backends.

Single namespace, string keys, string values, whole-value overwrites. Reads
return None for a missing key. Two backends are provided: a SQLAlchemy table
for local runs and tests, and Cloudflare Workers KV over its REST API for
the published repository.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from urllib.parse import quote

import requests
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from reprise.core.config import KVStoreConfig
from reprise.core.errors import StoreError
from reprise.db.connection import DatabaseManager
from reprise.db.models import KVEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract key-value store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Get value for key, or None if the key does not exist.

        Raises:
            StoreError: On backend failure
        """
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Overwrite value for key.

        Raises:
            StoreError: On backend failure
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key (no-op if missing).

        Raises:
            StoreError: On backend failure
        """
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        """List all keys in the namespace."""
        raise NotImplementedError


class SqlKeyValueStore(KeyValueStore):
    """Key-value store backed by a SQLAlchemy table."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize SQL store and ensure the table exists.

        Args:
            db_manager: Database manager
        """
        self.db_manager = db_manager
        self.db_manager.create_all()

    def get(self, key: str) -> str | None:
        try:
            with self.db_manager.session() as session:
                entry = session.get(KVEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read key '{key}': {e}") from e

    def put(self, key: str, value: str) -> None:
        try:
            with self.db_manager.session() as session:
                entry = session.get(KVEntry, key)
                if entry:
                    entry.value = value
                    entry.updated_at = datetime.utcnow()
                else:
                    session.add(KVEntry(key=key, value=value))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to write key '{key}': {e}") from e
        logger.debug(f"Stored {key} ({len(value)} chars)")

    def delete(self, key: str) -> None:
        try:
            with self.db_manager.session() as session:
                entry = session.get(KVEntry, key)
                if entry:
                    session.delete(entry)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete key '{key}': {e}") from e

    def keys(self) -> list[str]:
        try:
            with self.db_manager.session() as session:
                return list(session.scalars(select(KVEntry.key).order_by(KVEntry.key)))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list keys: {e}") from e


class CloudflareKVStore(KeyValueStore):
    """Cloudflare Workers KV namespace accessed through the REST API."""

    API_BASE = "https://api.cloudflare.com/client/v4"

    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        session: requests.Session | None = None,
        timeout: int = 60,
    ):
        """Initialize Workers KV store.

        Args:
            account_id: Cloudflare account ID
            namespace_id: KV namespace ID
            api_token: API token with KV read/write permission
            session: Optional HTTP session
            timeout: Request timeout in seconds
        """
        self.account_id = account_id
        self.namespace_id = namespace_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_token}"})

    @property
    def namespace_url(self) -> str:
        return (
            f"{self.API_BASE}/accounts/{self.account_id}"
            f"/storage/kv/namespaces/{self.namespace_id}"
        )

    def _value_url(self, key: str) -> str:
        return f"{self.namespace_url}/values/{quote(key, safe='')}"

    def get(self, key: str) -> str | None:
        try:
            response = self.session.get(self._value_url(key), timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"Failed to read key '{key}': {e}") from e

        if response.status_code == 404:
            return None
        if not response.ok:
            raise StoreError(f"Failed to read key '{key}': HTTP {response.status_code}")
        return response.content.decode("utf-8")

    def put(self, key: str, value: str) -> None:
        try:
            response = self.session.put(
                self._value_url(key),
                data=value.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"Failed to write key '{key}': {e}") from e

        if not response.ok:
            raise StoreError(f"Failed to write key '{key}': HTTP {response.status_code}")

        display = f"{value[:100]}... ({len(value)} chars)" if len(value) > 100 else value
        logger.debug(f"Set {key} = {display}")

    def delete(self, key: str) -> None:
        try:
            response = self.session.delete(self._value_url(key), timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"Failed to delete key '{key}': {e}") from e

        if not response.ok and response.status_code != 404:
            raise StoreError(f"Failed to delete key '{key}': HTTP {response.status_code}")

    def keys(self) -> list[str]:
        names: list[str] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor else {}
            try:
                response = self.session.get(
                    f"{self.namespace_url}/keys", params=params, timeout=self.timeout
                )
                response.raise_for_status()
                payload = response.json()
            except (requests.RequestException, ValueError) as e:
                raise StoreError(f"Failed to list keys: {e}") from e

            names.extend(item["name"] for item in payload.get("result", []))
            cursor = payload.get("result_info", {}).get("cursor")
            if not cursor:
                return names


def create_store(config: KVStoreConfig) -> KeyValueStore:
    """Create key-value store for the configured backend.

    Args:
        config: Key-value store configuration

    Returns:
        KeyValueStore instance

    Raises:
        ValueError: If backend credentials are missing
        StoreError: If the SQL database cannot be opened
    """
    if config.backend == "sql":
        try:
            return SqlKeyValueStore(DatabaseManager(config.url))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to open key-value store {config.url}: {e}") from e

    token = config.get_api_token()
    if not token:
        raise ValueError(
            "Cloudflare KV backend requires kvstore.api_token or CLOUDFLARE_API_TOKEN"
        )
    return CloudflareKVStore(config.account_id, config.namespace_id, token)
