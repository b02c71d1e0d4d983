from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from catalogue.db import get_db
from catalogue.exceptions import AlreadyDeleted, DuplicateSku, InvalidInput, NotFound
from catalogue.services.catalogue_service import CatalogueService

router = APIRouter(tags=["products"])


@router.get("", summary="List products")
def list_products(
    search: Optional[str] = Query(None, description="matches name or description"),
    # kept as a string so a malformed value is ignored rather than rejected
    category_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return CatalogueService(db).list_products(search=search, category_id=category_id)


@router.get("/{product_id}", summary="Get product with its variants")
def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).get_product(product_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", status_code=201, summary="Create product with at least one variant")
def create_product(payload: dict = Body(...), db: Session = Depends(get_db)):
    """
    payload: {
      "name": "Classic Tee", "description": "...", "category_id": 1, "status": "active",
      "variants": [ { "sku": "TEE-S", "name": "Small", "price_cents": 1999, "inventory_count": 25 } ]
    }
    """
    try:
        return CatalogueService(db).create_product(payload)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateSku as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/{product_id}", summary="Update product fields")
def update_product(product_id: int, payload: dict = Body(...), db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).update_product(product_id, payload)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{product_id}", summary="Soft-delete a product")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).delete_product(product_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyDeleted as e:
        raise HTTPException(
            status_code=409,
            detail=jsonable_encoder({"error": str(e), "deleted_at": e.deleted_at}),
        )
