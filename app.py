from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import config
from catalog import FilterResolver, create_category
from errors import UpstreamError, ValidationError
from highlight import build_highlighter
from stores import SupabaseCatalog, make_store

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SEARCH_ROUTE_VERSION = "products-search:v1"


# -------------------------
# Helpers
# -------------------------
def admin_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": request.headers.get("Origin") or "*",
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
        "Cache-Control": "no-store",
        "X-Robots-Tag": "noindex, nofollow",
    }


def admin_json(payload: Dict[str, Any], status: int = 200, **extra_headers: str):
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers.update(admin_headers())
    resp.headers.update(extra_headers)
    return resp


def current_admin() -> Optional[Dict[str, Any]]:
    """
    Who is calling the admin API:
    - Cloudflare Access identity headers (set by the edge when the route is protected)
    - otherwise HTTP Basic auth against WORKSHOP_USER / WORKSHOP_PASS
    """
    email = request.headers.get("Cf-Access-Authenticated-User-Email")
    if email:
        return {
            "auth": "access",
            "user": email,
            "sub": request.headers.get("Cf-Access-Authenticated-User-Id"),
        }

    user = current_app.config.get("WORKSHOP_USER") or ""
    password = current_app.config.get("WORKSHOP_PASS") or ""
    auth = request.authorization
    if user and auth is not None and auth.type == "basic":
        same_user = hmac.compare_digest((auth.username or "").encode(), user.encode())
        same_pass = hmac.compare_digest((auth.password or "").encode(), password.encode())
        if same_user and same_pass:
            return {"auth": "basic", "user": auth.username}
    return None


def highlight_items(items: List[Dict[str, Any]], q: str) -> List[Dict[str, Any]]:
    hl = build_highlighter(q, escape_html=True)
    out = []
    for item in items:
        title = item.get("my_title") or item.get("amazon_title") or ""
        out.append(
            {
                **item,
                "highlighted_title": str(hl(title)),
                "highlighted_description": str(hl(item.get("my_description_short"))),
            }
        )
    return out


# -------------------------
# App factory
# -------------------------
def create_app(store=None, **overrides: Any) -> Flask:
    app = Flask(__name__)

    app.config.update(
        SUPABASE_URL=config.SUPABASE_URL,
        SUPABASE_SERVICE_ROLE_KEY=config.SUPABASE_SERVICE_ROLE_KEY,
        WORKSHOP_USER=config.WORKSHOP_USER,
        WORKSHOP_PASS=config.WORKSHOP_PASS,
        ADMIN_AUTH_REQUIRED=config.ADMIN_AUTH_REQUIRED,
    )
    app.config.update(overrides)

    store = store if store is not None else make_store()
    resolver = FilterResolver(store)

    # -------------------------
    # Admin preflight + guard
    # -------------------------
    @app.before_request
    def admin_gate():
        if not request.path.startswith("/api/admin/"):
            return None
        if request.method == "OPTIONS":
            resp = app.response_class(status=204)
            resp.headers.update(admin_headers())
            resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            resp.headers["Access-Control-Allow-Headers"] = (
                "Authorization, Content-Type, Cf-Access-Jwt-Assertion, "
                "Cf-Access-Authenticated-User-Email"
            )
            return resp
        if app.config["ADMIN_AUTH_REQUIRED"] and request.path != "/api/admin/whoami":
            if current_admin() is None:
                return admin_json({"error": "not authenticated"}, 401)
        return None

    # -------------------------
    # Cache headers
    # -------------------------
    @app.after_request
    def add_cache_headers(resp):
        resp.headers.setdefault("Cache-Control", "no-store")
        return resp

    # -------------------------
    # Errors as JSON
    # -------------------------
    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": str(e) or "Server error"}), 500

    # -------------------------
    # Public shop
    # -------------------------
    @app.get("/api/shop-list")
    def shop_list():
        try:
            spec = resolver.shop_filter(request.args)
            items = store.list_products(spec, config.SHOP_COLUMNS)
        except UpstreamError as e:
            logger.error("Shop list query failed: %s (status=%s)", e, e.status)
            return jsonify(e.to_dict()), 500

        # Categories only feed the filter dropdown
        try:
            cats = store.list_categories()
        except UpstreamError as e:
            logger.warning("Category list for shop dropdown failed: %s", e)
            cats = []

        if spec.text:
            items = highlight_items(items, spec.text)

        resp = jsonify({"items": items, "count": len(items), "cats": cats})
        resp.headers["Cache-Control"] = "public, max-age=60"
        return resp

    # -------------------------
    # Admin API
    # -------------------------
    @app.get("/api/admin/products-search")
    def products_search():
        try:
            spec = resolver.admin_filter(request.args)
            items = store.list_products(spec, config.ADMIN_COLUMNS)
        except UpstreamError as e:
            logger.error("Admin product search failed: %s (status=%s)", e, e.status)
            return admin_json(e.to_dict(), 500, **{"X-Route-Version": SEARCH_ROUTE_VERSION})

        return admin_json(
            {"items": items, "count": len(items), "version": SEARCH_ROUTE_VERSION},
            **{"X-Route-Version": SEARCH_ROUTE_VERSION},
        )

    @app.get("/api/admin/categories")
    def categories_list():
        try:
            rows = store.list_categories()
        except UpstreamError as e:
            logger.error("Category list failed: %s (status=%s)", e, e.status)
            return admin_json({"error": "Supabase list failed"}, 500)
        return admin_json({"items": rows or []})

    @app.post("/api/admin/categories")
    def categories_create():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = {}

        try:
            category, existed = create_category(store, payload.get("name"))
        except ValidationError as e:
            return admin_json({"error": str(e)}, 400)
        except UpstreamError as e:
            logger.error("Category create failed: %s (status=%s)", e, e.status)
            return admin_json(e.to_dict(), 400)

        if existed:
            return admin_json({"ok": True, "category": category, "existed": True})
        return admin_json({"ok": True, "category": category}, 201)

    @app.get("/api/admin/whoami")
    def whoami():
        who = current_admin()
        if who is None:
            return admin_json({"error": "not authenticated"}, 401)
        return admin_json({"ok": True, **who})

    # -------------------------
    # Diagnostics (no secrets)
    # -------------------------
    @app.get("/api/diag")
    def diag():
        url = app.config.get("SUPABASE_URL") or ""
        out: Dict[str, Any] = {
            "supabase_url": bool(url),
            "supabase_key": bool(app.config.get("SUPABASE_SERVICE_ROLE_KEY")),
            "catalog": "supabase" if isinstance(store, SupabaseCatalog) else "json",
            "urlHost": urlparse(url).netloc if url else "",
            "status": None,
            "body": None,
        }
        out["status"], out["body"] = store.probe()
        resp = jsonify(out)
        resp.headers["X-Robots-Tag"] = "noindex, nofollow"
        return resp

    return app


app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5050, debug=True)
