import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

import config
from catalog import FilterResolver, create_category
from errors import CatalogError
from highlight import build_highlighter
from stores import JsonCatalog, make_store


def save_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def cmd_diag(store, args) -> int:
    status, body = store.probe()
    print(f"Catalog: {type(store).__name__}")
    print(f"Status:  {status}")
    print(body)
    return 0 if 200 <= status < 300 else 1


def cmd_add_category(store, args) -> int:
    category, existed = create_category(store, args.name)
    note = "already existed" if existed else "created"
    print(f"{note}: #{category.get('id')} {category.get('name')} ({category.get('slug')})")
    return 0


def cmd_export(store, args) -> int:
    resolver = FilterResolver(store)
    params = {"q": args.q, "cat": args.cat, "limit": args.limit}
    spec = resolver.shop_filter({k: v for k, v in params.items() if v is not None})
    items = store.list_products(spec, config.SHOP_COLUMNS)

    if spec.text:
        hl = build_highlighter(spec.text)
        for item in items:
            print("  " + hl(item.get("my_title") or item.get("amazon_title")))

    save_json(Path(args.out), {"items": items, "count": len(items)})
    print(f"Products: {len(items)}")
    print(f"Output: {Path(args.out).resolve()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Shop catalog maintenance")
    ap.add_argument("--catalog", default="", help="JSON catalog file (default: Supabase if configured)")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("diag", help="Probe the catalog store")

    p_add = sub.add_parser("add-category", help="Create a category (no-op if the slug exists)")
    p_add.add_argument("name")

    p_exp = sub.add_parser("export", help="Write the public shop listing to a JSON file")
    p_exp.add_argument("--out", default="shop-list.json")
    p_exp.add_argument("--q", default=None, help="Search text")
    p_exp.add_argument("--cat", default=None, help="Category id, slug or name")
    p_exp.add_argument("--limit", default=None)
    return ap


COMMANDS = {
    "diag": cmd_diag,
    "add-category": cmd_add_category,
    "export": cmd_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
    args = build_parser().parse_args(argv)
    store = JsonCatalog(args.catalog) if args.catalog else make_store()

    try:
        return COMMANDS[args.command](store, args)
    except CatalogError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
