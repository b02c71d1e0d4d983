from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from catalogue.exceptions import AlreadyDeleted, DuplicateSku, InvalidInput, LastVariant, NotFound
from catalogue.models.product import Product
from catalogue.models.variant import Variant
from catalogue.repositories.product_repo import ProductRepository
from catalogue.repositories.variant_repo import VariantRepository
from catalogue.services.aggregation import CatalogueAggregator


def _variants(*skus):
    return [
        {"sku": sku, "name": f"Variant {sku}", "price_cents": 100 * (i + 1), "inventory_count": i + 1}
        for i, sku in enumerate(skus)
    ]


def _fields(name="Repo Product", **extra):
    fields = {"name": name, "description": None, "category_id": None, "status": "active"}
    fields.update(extra)
    return fields


def _count(database, stmt):
    s = database.session()
    try:
        return s.execute(stmt).scalar()
    finally:
        s.close()


def test_create_with_variants_persists_everything(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("R-1", "R-2", "R-3"))
    assert product.id is not None
    skus = _count(database, select(func.group_concat(Variant.sku)).where(Variant.product_id == product.id))
    assert sorted(skus.split(",")) == ["R-1", "R-2", "R-3"]


def test_duplicate_sku_against_existing_rows_rolls_back(db, database):
    repo = ProductRepository(db)
    repo.create_with_variants(_fields("First"), _variants("DUP-1"))
    before = _count(database, select(func.count(Product.id)))

    with pytest.raises(DuplicateSku, match="SKUs are already in use"):
        repo.create_with_variants(_fields("Second"), _variants("FRESH-1", "DUP-1"))

    assert _count(database, select(func.count(Product.id))) == before
    assert _count(database, select(func.count(Variant.id)).where(Variant.sku == "FRESH-1")) == 0
    assert _count(database, select(func.count(Variant.id)).where(Variant.sku == "DUP-1")) == 1


def test_duplicate_sku_within_batch_rolls_back(db, database):
    with pytest.raises(DuplicateSku):
        ProductRepository(db).create_with_variants(_fields("Twins"), _variants("SAME", "SAME"))
    assert _count(database, select(func.count(Product.id)).where(Product.name == "Twins")) == 0


def test_create_rejects_unknown_category(db):
    with pytest.raises(InvalidInput, match="Category not found"):
        ProductRepository(db).create_with_variants(_fields(category_id=999999), _variants("CAT-X"))
    with pytest.raises(InvalidInput, match="Category not found"):
        ProductRepository(db).create_with_variants(_fields(category_id=2**64), _variants("CAT-Y"))


def test_update_fields_merges(db):
    repo = ProductRepository(db)
    product = repo.create_with_variants(_fields(description="keep me"), _variants("U-1"))
    created_at = product.updated_at

    updated = repo.update_fields(product.id, {"name": "Renamed"})
    assert updated.name == "Renamed"
    assert updated.description == "keep me"
    assert updated.updated_at >= created_at


def test_update_fields_missing_product(db):
    with pytest.raises(NotFound):
        ProductRepository(db).update_fields(999999, {"name": "x"})


def test_update_fields_still_allowed_after_soft_delete(db):
    # deleted products remain updatable; kept as-is until product rules say otherwise
    repo = ProductRepository(db)
    product = repo.create_with_variants(_fields(), _variants("Q-1"))
    repo.soft_delete(product.id)
    updated = repo.update_fields(product.id, {"status": "archived"})
    assert updated.status == "archived"
    assert updated.deleted_at is not None


def test_soft_delete_twice_reports_first_timestamp(db):
    repo = ProductRepository(db)
    product = repo.create_with_variants(_fields(), _variants("S-1"))

    stamped = repo.soft_delete(product.id)
    with pytest.raises(AlreadyDeleted) as exc:
        repo.soft_delete(product.id)
    assert exc.value.deleted_at == stamped


def test_soft_delete_keeps_the_row(db, database):
    repo = ProductRepository(db)
    product = repo.create_with_variants(_fields(), _variants("S-2"))
    stamped = repo.soft_delete(product.id)

    with pytest.raises(NotFound):
        CatalogueAggregator(db).get_product(product.id)
    assert _count(database, select(Product.deleted_at).where(Product.id == product.id)) == stamped


def test_soft_delete_missing_product(db):
    with pytest.raises(NotFound):
        ProductRepository(db).soft_delete(424242)


def test_concurrent_soft_deletes_have_one_winner(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("RACE-1"))

    def _attempt(_):
        s = database.session()
        try:
            ProductRepository(s).soft_delete(product.id)
            return "deleted"
        except AlreadyDeleted:
            return "conflict"
        finally:
            s.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(_attempt, range(4)))

    assert outcomes.count("deleted") == 1
    assert outcomes.count("conflict") == 3


def test_variant_update_same_sku_never_conflicts(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("V-1"))
    variant_id = _first_variant_id(database, product.id)
    updated = VariantRepository(db).update_fields(variant_id, {"sku": "V-1", "price_cents": 999})
    assert updated.sku == "V-1"
    assert updated.price_cents == 999


def test_variant_update_to_taken_sku(db, database):
    repo = ProductRepository(db)
    repo.create_with_variants(_fields("Other"), _variants("TAKEN"))
    product = repo.create_with_variants(_fields(), _variants("MINE"))
    variant_id = _first_variant_id(database, product.id)

    with pytest.raises(DuplicateSku) as exc:
        VariantRepository(db).update_fields(variant_id, {"sku": "TAKEN"}, sku_changed=True)
    assert str(exc.value) == "SKU already exists"
    assert VariantRepository(db).get(variant_id).sku == "MINE"


def test_variant_update_taken_sku_without_flag_hits_constraint(db, database):
    repo = ProductRepository(db)
    repo.create_with_variants(_fields("Other"), _variants("CLAIMED"))
    product = repo.create_with_variants(_fields(), _variants("OWN"))
    variant_id = _first_variant_id(database, product.id)

    # no pre-check requested; the unique index still refuses the write
    with pytest.raises(DuplicateSku, match="SKU already exists"):
        VariantRepository(db).update_fields(variant_id, {"sku": "CLAIMED"})
    assert VariantRepository(db).get(variant_id).sku == "OWN"


def test_variant_get_missing(db):
    with pytest.raises(NotFound, match="Variant not found"):
        VariantRepository(db).get(987654)


def test_delete_last_variant_is_refused(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("ONLY"))
    variant_id = _first_variant_id(database, product.id)
    with pytest.raises(LastVariant, match="last variant"):
        VariantRepository(db).delete(variant_id)
    assert VariantRepository(db).get(variant_id).sku == "ONLY"


def test_delete_one_of_two_variants(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("D-1", "D-2"))
    variant_id = _first_variant_id(database, product.id)
    VariantRepository(db).delete(variant_id)

    assert _count(database, select(func.count(Variant.id)).where(Variant.product_id == product.id)) == 1
    with pytest.raises(NotFound):
        VariantRepository(db).delete(variant_id)


def test_add_variant_appends(db, database):
    product = ProductRepository(db).create_with_variants(_fields(), _variants("APP-1"))
    variant = VariantRepository(db).add(
        product.id, {"sku": "APP-2", "name": "Extra", "price_cents": 50, "inventory_count": 3}
    )
    assert variant.product_id == product.id
    assert _count(database, select(func.count(Variant.id)).where(Variant.product_id == product.id)) == 2

    with pytest.raises(DuplicateSku):
        VariantRepository(db).add(
            product.id, {"sku": "APP-1", "name": "Clash", "price_cents": 50, "inventory_count": 3}
        )


def test_add_variant_to_deleted_product(db):
    repo = ProductRepository(db)
    product = repo.create_with_variants(_fields(), _variants("GONE-1"))
    repo.soft_delete(product.id)
    with pytest.raises(NotFound):
        VariantRepository(db).add(
            product.id, {"sku": "GONE-2", "name": "Late", "price_cents": 1, "inventory_count": 1}
        )


def _first_variant_id(database, product_id):
    return _count(
        database,
        select(Variant.id).where(Variant.product_id == product_id).order_by(Variant.id).limit(1),
    )
