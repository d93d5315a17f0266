import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from stores import JsonCatalog

SEED = {
    "categories": [
        {"id": 1, "name": "Baking Tools", "slug": "baking-tools", "parent_id": None},
        {"id": 4, "name": "Christmas Gifts", "slug": "christmas-gifts", "parent_id": None},
        {"id": 5, "name": "Gift Sets", "slug": "gift-sets", "parent_id": None},
    ],
    "products": [
        {
            "product_num": "A1",
            "my_title": "Classic Egg Noodle Soup Pot",
            "amazon_title": "Stainless Stock Pot 8qt",
            "my_description_short": "Big enough for a double batch of egg noodles.",
            "image_main": "pot.webp",
            "affiliate_link": "https://example.com/a1",
            "amazon_category": "Cookware",
            "shop_category_id": None,
            "approved": True,
            "archived_at": None,
            "created_at": "2025-01-03T10:00:00+00:00",
        },
        {
            "product_num": "A2",
            "my_title": "Holiday Gift Set",
            "amazon_title": "Cookie Cutter Box",
            "my_description_short": "Stars & trees <b>bundle</b>.",
            "image_main": "gift.webp",
            "affiliate_link": "https://example.com/a2",
            "amazon_category": "giftware",
            "shop_category_id": 5,
            "approved": True,
            "archived_at": None,
            "created_at": "2025-01-05T10:00:00+00:00",
        },
        {
            "product_num": "A3",
            "my_title": "Rolling Pin",
            "amazon_title": "Maple Rolling Pin",
            "my_description_short": "Retired.",
            "image_main": "pin.webp",
            "affiliate_link": "https://example.com/a3",
            "amazon_category": "Kitchen",
            "shop_category_id": 1,
            "approved": True,
            "archived_at": "2025-02-01T10:00:00+00:00",
            "created_at": "2025-01-04T10:00:00+00:00",
        },
        {
            "product_num": "A4",
            "my_title": "Pie Dish",
            "amazon_title": "Ceramic Pie Dish 2.5* Deep",
            "my_description_short": "Waiting for review.",
            "image_main": "pie.webp",
            "affiliate_link": "https://example.com/a4",
            "amazon_category": "Kitchen",
            "shop_category_id": 1,
            "approved": False,
            "archived_at": None,
            "created_at": "2025-01-06T10:00:00+00:00",
        },
    ],
}


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(SEED), encoding="utf-8")
    return path


@pytest.fixture
def store(catalog_file):
    return JsonCatalog(str(catalog_file))


@pytest.fixture
def app(store):
    return create_app(store=store, TESTING=True, WORKSHOP_USER="", WORKSHOP_PASS="", ADMIN_AUTH_REQUIRED=False)


@pytest.fixture
def client(app):
    return app.test_client()
