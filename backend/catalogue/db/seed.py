import json
import logging
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalogue.exceptions import DuplicateSku, InvalidInput
from catalogue.models.category import Category
from catalogue.models.product import Product
from catalogue.repositories.product_repo import ProductRepository
from catalogue.services.catalogue_service import CatalogueService
from catalogue.utils.transactions import smart_transaction

log = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["Accessories", "Apparel", "Electronics", "Home & Kitchen", "Outdoors"]

# (category name, product fields, variants)
DEMO_PRODUCTS = [
    (
        "Apparel",
        {"name": "Classic Tee", "description": "Heavyweight cotton t-shirt", "status": "active"},
        [
            {"sku": "TEE-S", "name": "Small", "price_cents": 1999, "inventory_count": 25},
            {"sku": "TEE-M", "name": "Medium", "price_cents": 1999, "inventory_count": 40},
            {"sku": "TEE-L", "name": "Large", "price_cents": 2199, "inventory_count": 15},
        ],
    ),
    (
        "Home & Kitchen",
        {"name": "Pour-Over Kettle", "description": "Gooseneck kettle for slow brewing", "status": "active"},
        [{"sku": "KETTLE-1L", "name": "1 litre", "price_cents": 4500, "inventory_count": 8}],
    ),
    (
        "Outdoors",
        {"name": "Trail Bottle", "description": "Insulated steel bottle", "status": "draft"},
        [
            {"sku": "BOTTLE-500", "name": "500 ml", "price_cents": 2400, "inventory_count": 30},
            {"sku": "BOTTLE-750", "name": "750 ml", "price_cents": 2800, "inventory_count": 12},
        ],
    ),
    (
        "Accessories",
        {"name": "Canvas Tote", "description": None, "status": "active"},
        [{"sku": "TOTE-NAT", "name": "Natural", "price_cents": 1500, "inventory_count": 50}],
    ),
]


def seed_catalogue(db: Session, with_products: bool = True) -> Dict[str, int]:
    """
    Insert default categories and demo products into an empty catalogue.

    Categories are added only when the categories table is empty, products
    only when the products table is empty, so running this twice is harmless.
    Returns {"categories": n, "products": n} with the number of rows created.
    """
    created = {"categories": 0, "products": 0}

    with smart_transaction(db):
        has_categories = db.execute(select(func.count(Category.id))).scalar() or 0
        if not has_categories:
            db.add_all([Category(name=name) for name in DEFAULT_CATEGORIES])
            created["categories"] = len(DEFAULT_CATEGORIES)
        db.flush()
        category_ids = {c.name: c.id for c in db.execute(select(Category)).scalars()}
        has_products = db.execute(select(func.count(Product.id))).scalar() or 0

    if with_products and not has_products:
        repo = ProductRepository(db)
        for category_name, fields, variants in DEMO_PRODUCTS:
            repo.create_with_variants(
                dict(fields, category_id=category_ids.get(category_name)), variants
            )
            created["products"] += 1

    if created["categories"] or created["products"]:
        log.info(
            "Seeded %d categories and %d products", created["categories"], created["products"]
        )
    return created


def _source_list(data) -> List[Any]:
    if isinstance(data, dict):
        # an object with an items list, or a mapping of entries
        if isinstance(data.get("items"), list):
            return data["items"]
        return list(data.values())
    if isinstance(data, list):
        return data
    return []


def seed_from_file(db: Session, path: str) -> Dict[str, int]:
    """
    Create products from a JSON file: a list (or {"items": [...]}) of product
    payloads in the POST /api/products shape. An entry may name its category
    with "category" instead of "category_id".

    Invalid entries and entries whose SKUs already exist are skipped and logged.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise RuntimeError(f"Failed to parse JSON from {path}: {e}") from e

    with smart_transaction(db):
        category_ids = {c.name: c.id for c in db.execute(select(Category)).scalars()}

    service = CatalogueService(db)
    result = {"created": 0, "skipped": 0}
    for entry in _source_list(data):
        if isinstance(entry, dict) and "category" in entry and "category_id" not in entry:
            entry = dict(entry)
            entry["category_id"] = category_ids.get(entry.pop("category"))
        try:
            service.create_product(entry)
            result["created"] += 1
        except (InvalidInput, DuplicateSku) as e:
            name = entry.get("name") if isinstance(entry, dict) else entry
            log.warning("Skipping %r: %s", name, e)
            result["skipped"] += 1

    log.info("Loaded %s: %d created, %d skipped", path, result["created"], result["skipped"])
    return result
