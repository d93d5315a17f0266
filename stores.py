"""Catalog backends: hosted PostgREST (Supabase) and a local JSON file."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

import config
from catalog import FilterSpec, pg_like_escape, pg_quote
from errors import UpstreamError

logger = logging.getLogger(__name__)


class SupabaseCatalog:
    """Products/categories over the Supabase REST API.

    Every call is one bounded request (no retry); failures raise UpstreamError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = config.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            }
        )

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _request(self, method: str, table: str, **kwargs) -> Any:
        try:
            r = self.session.request(method, self._url(table), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Supabase %s %s failed: %s", method, table, e)
            raise UpstreamError(str(e) or "Supabase request failed") from e

        try:
            body = r.json()
        except ValueError:
            body = r.text

        if not r.ok:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning("Supabase %s %s -> %s", method, table, r.status_code)
            raise UpstreamError(message or f"Supabase error {r.status_code}", r.status_code, body)
        return body

    def select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        rows = self._request("GET", table, params=params)
        return rows if isinstance(rows, list) else []

    # ---- categories ----
    def find_category(self, token: str) -> Optional[Dict[str, Any]]:
        """First category whose slug equals the token or whose name contains it (lowest id wins)."""
        rows = self.select(
            "categories",
            {
                "select": "id,slug,name",
                "or": f"(slug.eq.{pg_quote(token)},name.ilike.{pg_quote(f'*{pg_like_escape(token)}*')})",
                "order": "id.asc",
                "limit": "1",
            },
        )
        return rows[0] if rows else None

    def category_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        rows = self.select(
            "categories",
            {"select": ",".join(config.CATEGORY_COLUMNS), "slug": f"eq.{slug}", "limit": "1"},
        )
        return rows[0] if rows else None

    def insert_category(self, name: str, slug: str) -> Dict[str, Any]:
        out = self._request(
            "POST",
            "categories",
            json=[{"name": name, "slug": slug}],
            headers={"Prefer": "return=representation"},
        )
        return out[0] if isinstance(out, list) and out else out

    def list_categories(self) -> List[Dict[str, Any]]:
        return self.select(
            "categories",
            {"select": ",".join(config.CATEGORY_COLUMNS), "order": "name.asc"},
        )

    # ---- products ----
    def list_products(self, spec: FilterSpec, columns: Sequence[str]) -> List[Dict[str, Any]]:
        return self.select("products", spec.to_params(columns))

    def probe(self) -> Tuple[int, str]:
        """Harmless read used by /api/diag; returns (status, raw body)."""
        try:
            r = self.session.get(
                self._url("products"),
                params={"select": "id", "limit": "1"},
                headers={"Prefer": "count=exact"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return 0, str(e) or "fetch error"
        return r.status_code, r.text


class JsonCatalog:
    """Catalog kept in one JSON file: {"products": [...], "categories": [...]}.

    Used for local development and tests; reads the file on every call.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {"products": [], "categories": []}
        except ValueError as e:
            raise UpstreamError("Catalog file is not valid JSON", details=str(e)) from e

        if not isinstance(data, dict):
            raise UpstreamError("Catalog file must hold an object")
        data.setdefault("products", [])
        data.setdefault("categories", [])
        return data

    def _save(self, data) -> None:
        tmp_path = self.path + ".tmp"
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise UpstreamError(f"Could not write catalog: {e}") from e

    def _categories_by_id(self) -> List[Dict[str, Any]]:
        return sorted(self._load()["categories"], key=lambda c: int(c.get("id") or 0))

    # ---- categories ----
    def find_category(self, token: str) -> Optional[Dict[str, Any]]:
        needle = token.lower()
        for c in self._categories_by_id():
            if c.get("slug") == token or needle in str(c.get("name") or "").lower():
                return c
        return None

    def category_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self._categories_by_id() if c.get("slug") == slug), None)

    def insert_category(self, name: str, slug: str) -> Dict[str, Any]:
        data = self._load()
        ids = [int(c.get("id") or 0) for c in data["categories"]]
        row = {
            "id": max(ids, default=0) + 1,
            "name": name,
            "slug": slug,
            "parent_id": None,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        data["categories"].append(row)
        self._save(data)
        return row

    def list_categories(self) -> List[Dict[str, Any]]:
        cats = sorted(self._load()["categories"], key=lambda c: str(c.get("name") or "").lower())
        return [{k: c.get(k) for k in config.CATEGORY_COLUMNS} for c in cats]

    # ---- products ----
    def list_products(self, spec: FilterSpec, columns: Sequence[str]) -> List[Dict[str, Any]]:
        rows = spec.apply(self._load()["products"])
        return [{k: r.get(k) for k in columns} for r in rows]

    def probe(self) -> Tuple[int, str]:
        if not os.path.isfile(self.path):
            return 0, f"catalog file not found: {self.path}"
        try:
            n = len(self._load()["products"])
        except UpstreamError as e:
            return 500, str(e)
        return 200, f"{n} products in {os.path.basename(self.path)}"


def make_store():
    if config.SUPABASE_URL and config.SUPABASE_SERVICE_ROLE_KEY:
        logger.info("Using Supabase catalog at %s", config.SUPABASE_URL)
        return SupabaseCatalog(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    logger.info("Using JSON catalog %s", config.CATALOG_PATH)
    return JsonCatalog(config.CATALOG_PATH)
