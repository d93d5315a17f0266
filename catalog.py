"""Request-parameter interpretation and filter resolution for the product catalog.

The HTTP handlers hand raw query-string values to :class:`FilterResolver`, which
returns an immutable :class:`FilterSpec`. A spec can be rendered as PostgREST
query parameters (hosted catalog) or evaluated directly against dict rows
(local JSON catalog). Both renderings treat `q` and `cat` as literal substrings:
LIKE wildcards `%` and `_` are escaped for PostgREST. The one exception is `*`,
which PostgREST always turns into `%` and offers no escape for, so a `*` typed
by the user still acts as a wildcard on the hosted catalog only.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import config
from errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

STATES = ("active", "archived", "all")

# Fields searched by `q`
SHOP_TEXT_FIELDS: Tuple[str, ...] = ("my_title", "amazon_title")
ADMIN_TEXT_FIELDS: Tuple[str, ...] = ("my_title", "amazon_title", "amazon_category", "product_num")

ORDER_NEWEST_FIRST = "created_at.desc"


# -------------------------
# Helpers
# -------------------------
def slugify(name: str, max_len: int = config.SLUG_MAX_LEN) -> str:
    """URL-safe slug: 'Café Tools' -> 'cafe-tools'."""
    norm = unicodedata.normalize("NFKD", str(name or "").lower())
    s = "".join(ch for ch in norm if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = s.strip("-")
    return s[:max_len]


def parse_limit(raw: Optional[str]) -> int:
    if raw is None:
        return config.DEFAULT_LIMIT
    try:
        n = int(str(raw).strip())
    except ValueError:
        return config.DEFAULT_LIMIT
    if n <= 0:
        return config.DEFAULT_LIMIT
    return min(n, config.MAX_LIMIT)


def parse_state(raw: Optional[str]) -> str:
    state = (raw or "").strip().lower()
    return state if state in STATES else "all"


def parse_category_id(token: str) -> Optional[int]:
    """Return the id only for canonical decimal input ('5', not '05' or '5.0')."""
    try:
        n = int(token)
    except (TypeError, ValueError):
        return None
    return n if str(n) == token else None


def pg_quote(value: str) -> str:
    # Double-quoted PostgREST value; keeps commas/parens in user input literal
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def pg_like_escape(value: str) -> str:
    """Backslash-escape LIKE wildcards so `%` and `_` match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(needle: str, value: Any) -> bool:
    return value is not None and needle in str(value).lower()


# -------------------------
# Model
# -------------------------
@dataclass(frozen=True)
class FilterSpec:
    state: str = "all"
    text: Optional[str] = None
    text_fields: Tuple[str, ...] = SHOP_TEXT_FIELDS
    category_id: Optional[int] = None
    legacy_category: Optional[str] = None
    limit: int = config.DEFAULT_LIMIT
    approved_only: bool = False
    order: str = ORDER_NEWEST_FIRST

    def to_params(self, columns: Sequence[str]) -> Dict[str, str]:
        """PostgREST query-string parameters for the products table."""
        params: Dict[str, str] = {"select": ",".join(columns)}

        if self.approved_only:
            params["approved"] = "eq.true"

        if self.state == "active":
            params["archived_at"] = "is.null"
        elif self.state == "archived":
            params["archived_at"] = "not.is.null"

        if self.text:
            term = pg_quote(f"*{pg_like_escape(self.text)}*")
            params["or"] = "(" + ",".join(f"{f}.ilike.{term}" for f in self.text_fields) + ")"

        if self.category_id is not None:
            params["shop_category_id"] = f"eq.{self.category_id}"
        elif self.legacy_category:
            params["amazon_category"] = f"eq.{self.legacy_category}"

        params["order"] = self.order
        params["limit"] = str(self.limit)
        return params

    def matches(self, row: Mapping[str, Any]) -> bool:
        if self.approved_only and row.get("approved") is not True:
            return False

        archived = bool(row.get("archived_at"))
        if self.state == "active" and archived:
            return False
        if self.state == "archived" and not archived:
            return False

        if self.text:
            needle = self.text.lower()
            if not any(_contains(needle, row.get(f)) for f in self.text_fields):
                return False

        if self.category_id is not None:
            cat_ref = row.get("shop_category_id")
            if cat_ref is None or str(cat_ref) != str(self.category_id):
                return False
        elif self.legacy_category:
            if row.get("amazon_category") != self.legacy_category:
                return False

        return True

    def apply(self, rows: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
        """Filter, order newest first and cap, the way the hosted store does."""
        hits = [r for r in rows if self.matches(r)]
        hits.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return hits[: self.limit]


# -------------------------
# Resolver
# -------------------------
class FilterResolver:
    """Turns raw `state` / `q` / `cat` / `limit` values into a FilterSpec."""

    def __init__(self, store):
        self.store = store

    def resolve_category(self, token: str) -> Optional[int]:
        """Category id for a token: canonical id, then slug/name lookup.

        Returns None when nothing matches (or the lookup failed); the caller then
        falls back to the legacy `amazon_category` equality match.
        """
        ident = parse_category_id(token)
        if ident is not None:
            return ident

        try:
            row = self.store.find_category(token)
        except UpstreamError as e:
            logger.warning("Category lookup for %r failed (%s), using legacy match", token, e)
            return None

        if row and row.get("id") is not None:
            return row["id"]
        return None

    def _category_filter(self, raw: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
        token = (raw or "").strip()
        if not token:
            return None, None
        cat_id = self.resolve_category(token)
        if cat_id is not None:
            return cat_id, None
        return None, token

    def shop_filter(self, args: Mapping[str, str]) -> FilterSpec:
        """Public listing: approved, non-archived items only; no `state` input."""
        cat_id, legacy = self._category_filter(args.get("cat"))
        return FilterSpec(
            state="active",
            text=(args.get("q") or "").strip() or None,
            text_fields=SHOP_TEXT_FIELDS,
            category_id=cat_id,
            legacy_category=legacy,
            limit=parse_limit(args.get("limit")),
            approved_only=True,
        )

    def admin_filter(self, args: Mapping[str, str]) -> FilterSpec:
        cat_id, legacy = self._category_filter(args.get("cat"))
        return FilterSpec(
            state=parse_state(args.get("state")),
            text=(args.get("q") or "").strip() or None,
            text_fields=ADMIN_TEXT_FIELDS,
            category_id=cat_id,
            legacy_category=legacy,
            limit=parse_limit(args.get("limit")),
        )


# -------------------------
# Category creation
# -------------------------
def create_category(store, name: Any) -> Tuple[Dict[str, Any], bool]:
    """Look up by slug, insert only when missing. Returns (category, existed).

    Not atomic: two identical concurrent requests can both miss the lookup and
    insert two rows with the same slug unless the table has a unique constraint.
    """
    clean = str(name or "").strip()
    if not clean:
        raise ValidationError("name is required")

    slug = slugify(clean)
    if not slug:
        raise ValidationError("name must contain letters or digits")

    existing = store.category_by_slug(slug)
    if existing:
        logger.info("Category %r already exists (id=%s)", slug, existing.get("id"))
        return existing, True

    created = store.insert_category(clean, slug)
    logger.info("Created category %r (id=%s)", slug, created.get("id"))
    return created, False
