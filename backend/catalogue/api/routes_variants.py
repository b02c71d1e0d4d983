from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from catalogue.db import get_db
from catalogue.exceptions import DuplicateSku, InvalidInput, LastVariant, NotFound
from catalogue.services.catalogue_service import CatalogueService

router = APIRouter(tags=["variants"])


@router.get("/{variant_id}", summary="Get a variant")
def get_variant(variant_id: int, db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).get_variant(variant_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{variant_id}", summary="Update variant fields")
def update_variant(variant_id: int, payload: dict = Body(...), db: Session = Depends(get_db)):
    """
    payload (all optional): { "name": "...", "sku": "NEW-SKU", "price_cents": 1999, "inventory_count": 50 }
    """
    try:
        return CatalogueService(db).update_variant(variant_id, payload)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidInput, DuplicateSku) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{variant_id}", summary="Delete a variant permanently")
def delete_variant(variant_id: int, db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).delete_variant(variant_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LastVariant as e:
        raise HTTPException(status_code=400, detail=str(e))
