import pytest

from catalogue.exceptions import AlreadyDeleted, DuplicateSku, InvalidInput, LastVariant, NotFound
from catalogue.services.aggregation import CatalogueAggregator


def test_create_returns_product_with_variants(service, product_payload):
    payload = product_payload("Apples", skus=("A1", "A2"), description="Fresh", status="draft")
    created = service.create_product(payload)

    assert created["name"] == "Apples"
    assert created["status"] == "draft"
    assert created["deleted_at"] is None
    assert len(created["variants"]) == 2
    for sent, got in zip(payload["variants"], created["variants"]):
        for key in ("sku", "name", "price_cents", "inventory_count"):
            assert got[key] == sent[key]
        assert got["product_id"] == created["id"]


def test_create_with_invalid_status_defaults_to_active(service, product_payload):
    created = service.create_product(product_payload(skus=("ST-1",), status="published"))
    assert created["status"] == "active"


def test_create_failures(service, product_payload):
    with pytest.raises(InvalidInput):
        service.create_product(product_payload(skus=()))
    with pytest.raises(InvalidInput):
        service.create_product({"variants": product_payload()["variants"]})

    service.create_product(product_payload("One", skus=("CLASH",)))
    with pytest.raises(DuplicateSku):
        service.create_product(product_payload("Two", skus=("CLASH",)))


def test_update_product_returns_category_name(service, product_payload):
    apparel = next(c["id"] for c in service.list_categories() if c["name"] == "Apparel")
    created = service.create_product(product_payload(skus=("UP-1",), description="old"))

    updated = service.update_product(created["id"], {"category_id": apparel, "description": None})
    assert updated["category_id"] == apparel
    assert updated["category_name"] == "Apparel"
    assert updated["description"] == "old"
    assert "variants" not in updated


def test_update_missing_product(service):
    with pytest.raises(NotFound):
        service.update_product(999999, {"name": "x"})


def test_update_of_deleted_product_is_permitted(service, product_payload):
    created = service.create_product(product_payload(skus=("QU-1",)))
    service.delete_product(created["id"])

    updated = service.update_product(created["id"], {"name": "Still editable"})
    assert updated["name"] == "Still editable"
    assert updated["deleted_at"] is not None


def test_delete_product_is_not_idempotent(db, service, product_payload):
    created = service.create_product(product_payload(skus=("DEL-1",)))
    assert service.delete_product(created["id"]) == {"success": True}

    with pytest.raises(AlreadyDeleted) as exc:
        service.delete_product(created["id"])
    stored = CatalogueAggregator(db).get_product_fields(created["id"])
    assert exc.value.deleted_at == stored["deleted_at"]

    with pytest.raises(NotFound):
        service.delete_product(999999)


def test_variant_round_trip(service, product_payload):
    created = service.create_product(product_payload(skus=("VR-1", "VR-2")))
    first, second = created["variants"]

    assert service.get_variant(first["id"])["sku"] == "VR-1"
    assert service.update_variant(first["id"], {"sku": "VR-1"})["sku"] == "VR-1"

    updated = service.update_variant(first["id"], {"name": "Renamed", "inventory_count": 0})
    assert updated["name"] == "Renamed"
    assert updated["inventory_count"] == 0
    assert updated["price_cents"] == first["price_cents"]

    with pytest.raises(DuplicateSku):
        service.update_variant(first["id"], {"sku": "VR-2"})
    with pytest.raises(InvalidInput):
        service.update_variant(first["id"], {"price_cents": -1})

    assert service.delete_variant(second["id"]) == {"success": True}
    with pytest.raises(LastVariant):
        service.delete_variant(first["id"])
    assert [v["id"] for v in service.get_product(created["id"])["variants"]] == [first["id"]]


def test_variant_missing(service):
    with pytest.raises(NotFound):
        service.get_variant(999999)
    with pytest.raises(NotFound):
        service.update_variant(999999, {"price_cents": 1000})
    with pytest.raises(NotFound):
        service.delete_variant(999999)


def test_add_variant(service, product_payload):
    created = service.create_product(product_payload(skus=("ADD-1",)))
    added = service.add_variant(
        created["id"], {"sku": "ADD-2", "name": "Large", "price_cents": 900, "inventory_count": 4}
    )
    assert added["product_id"] == created["id"]

    summary = {p["id"]: p for p in service.list_products()}[created["id"]]
    assert summary["variant_count"] == 2
    assert summary["max_price_cents"] == 900

    with pytest.raises(InvalidInput):
        service.add_variant(created["id"], {"sku": "ADD-3", "name": "Bad", "price_cents": -1})


def test_ids_beyond_integer_range_are_not_found(service, product_payload):
    huge = 2**64
    with pytest.raises(NotFound, match="Product not found"):
        service.get_product(huge)
    with pytest.raises(NotFound, match="Product not found"):
        service.update_product(huge, {"name": "x"})
    with pytest.raises(NotFound, match="Product not found"):
        service.delete_product(huge)
    with pytest.raises(NotFound, match="Variant not found"):
        service.get_variant(huge)
    with pytest.raises(NotFound, match="Variant not found"):
        service.update_variant(huge, {"price_cents": 1})
    with pytest.raises(NotFound, match="Category not found"):
        service.get_category(huge)

    created = service.create_product(product_payload(skus=("RANGE-1",)))
    with pytest.raises(InvalidInput, match="Category not found"):
        service.update_product(created["id"], {"category_id": huge})
    assert service.list_products(category_id=str(huge)) == []
