"""
Adapters for the two external collaborators: the entry store (diary rows)
and the blob store (photo bytes). Both raise StoreError on any failure; the
callers decide whether that is fatal.
"""
import datetime
from pathlib import Path
from typing import Iterable, Protocol

import requests
import yaml
from loguru import logger

import daypat.settings as settings
from daypat.errors import StoreError


class EntryStore(Protocol):
    def select(
        self,
        columns: Iterable[str],
        *,
        date_from: str | None = None,
        date_to: str | None = None,
        date: str | None = None,
        liked: bool | None = None,
        descending: bool = False,
    ) -> list[dict]: ...


class BlobStore(Protocol):
    def download(self, path: str) -> bytes: ...


class RestEntryStore:
    """PostgREST-style `entries` table behind an HTTP API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: str | None = None,
        owner: str | None = None,
        table: str = "entries",
        timeout: float = settings.FETCH_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.url = url.rstrip("/")
        self.table = table
        self.owner = owner
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Accept": "application/json",
        }

    def select(self, columns, *, date_from=None, date_to=None, date=None, liked=None, descending=False):
        params: list[tuple[str, str]] = [("select", ",".join(columns))]
        if self.owner:
            params.append(("user_id", f"eq.{self.owner}"))
        if date:
            params.append(("entry_date", f"eq.{date}"))
        if date_from:
            params.append(("entry_date", f"gte.{date_from}"))
        if date_to:
            params.append(("entry_date", f"lte.{date_to}"))
        if liked is not None:
            params.append(("is_liked", f"eq.{str(liked).lower()}"))
        params.append(("order", f"entry_date.{'desc' if descending else 'asc'}"))

        endpoint = f"{self.url}/{self.table}"
        logger.debug("Querying {} with {}", endpoint, params)
        try:
            resp = self.session.get(endpoint, params=params, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
            rows = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise StoreError(f"Entry query failed: {e}") from e
        if not isinstance(rows, list):
            raise StoreError(f"Entry query returned {type(rows).__name__}, expected a list")
        return rows


class LocalEntryStore:
    """
    Rows held in memory, optionally loaded from a YAML or JSON file
    (a list of mappings with the same columns as the entries table).
    """

    def __init__(self, rows: list[dict] | None = None, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._rows = [self._normalize(r) for r in rows] if rows is not None else None

    def _load(self) -> list[dict]:
        if self._rows is None:
            if not self.path:
                raise StoreError("LocalEntryStore needs rows or a path")
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    logger.debug("Loading entries from {}", self.path)
                    data = yaml.safe_load(f) or []
            except (OSError, yaml.YAMLError) as e:
                raise StoreError(f"Could not read {self.path}: {e}") from e
            if isinstance(data, dict):
                data = data.get("entries", [])
            if not isinstance(data, list):
                raise StoreError(f"{self.path} must hold a list of entries")
            self._rows = [self._normalize(r) for r in data if isinstance(r, dict)]
        return self._rows

    @staticmethod
    def _normalize(row: dict) -> dict:
        row = dict(row)
        value = row.get("entry_date")
        # YAML turns bare dates into date objects
        if isinstance(value, datetime.date):
            row["entry_date"] = value.strftime("%Y-%m-%d")
        return row

    def select(self, columns, *, date_from=None, date_to=None, date=None, liked=None, descending=False):
        columns = list(columns)
        rows = []
        for row in self._load():
            key = str(row.get("entry_date", ""))
            if date and key != date:
                continue
            if date_from and key < date_from:
                continue
            if date_to and key > date_to:
                continue
            if liked is not None and bool(row.get("is_liked")) != liked:
                continue
            rows.append({c: row.get(c) for c in columns})
        return sorted(rows, key=lambda r: str(r.get("entry_date", "")), reverse=descending)


class HttpBlobStore:
    """Object storage endpoint: GET {url}/object/{bucket}/{path}."""

    def __init__(
        self,
        url: str,
        bucket: str = settings.PHOTO_BUCKET,
        api_key: str | None = None,
        access_token: str | None = None,
        timeout: float = settings.FETCH_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.url = url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {}
        if api_key:
            self.headers["apikey"] = api_key
        if access_token or api_key:
            self.headers["Authorization"] = f"Bearer {access_token or api_key}"

    def download(self, path: str) -> bytes:
        endpoint = f"{self.url}/object/{self.bucket}/{path.lstrip('/')}"
        try:
            resp = self.session.get(endpoint, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StoreError(f"Download of {path} failed: {e}") from e
        return resp.content


class LocalBlobStore:
    """Blobs as files under a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def download(self, path: str) -> bytes:
        target = (self.root / path.lstrip("/")).resolve()
        if not target.is_relative_to(self.root):
            raise StoreError(f"Blob path {path!r} escapes {self.root}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise StoreError(f"Could not read blob {path}: {e}") from e


def build_stores(config: dict) -> tuple[EntryStore, BlobStore]:
    """Instantiate the entry and blob stores described by a loaded config."""
    entry_cfg = dict(config.get("entry_store", {}))
    blob_cfg = dict(config.get("blob_store", {}))

    entry_type = entry_cfg.pop("type", "local")
    if entry_type == "rest":
        entry_store = _create(RestEntryStore, "entry_store", entry_cfg)
    elif entry_type == "local":
        entry_store = LocalEntryStore(path=entry_cfg.get("path"))
    else:
        raise ValueError(f"Unknown entry_store type: {entry_type}")

    blob_type = blob_cfg.pop("type", "local")
    if blob_type == "http":
        blob_store = _create(HttpBlobStore, "blob_store", blob_cfg)
    elif blob_type == "local":
        blob_store = LocalBlobStore(blob_cfg.get("path", "."))
    else:
        raise ValueError(f"Unknown blob_store type: {blob_type}")

    logger.debug("Using {} entry store and {} blob store", entry_type, blob_type)
    return entry_store, blob_store


def _create(cls, section: str, options: dict):
    try:
        return cls(**options)
    except TypeError as e:
        raise ValueError(f"Invalid {section} configuration: {e}") from e
