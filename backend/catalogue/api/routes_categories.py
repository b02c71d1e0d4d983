from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from catalogue.db import get_db
from catalogue.exceptions import NotFound
from catalogue.services.catalogue_service import CatalogueService

router = APIRouter(tags=["categories"])


@router.get("", summary="List categories with live product counts")
def list_categories(db: Session = Depends(get_db)):
    return CatalogueService(db).list_categories()


@router.get("/{category_id}", summary="Get a category")
def get_category(category_id: int, db: Session = Depends(get_db)):
    try:
        return CatalogueService(db).get_category(category_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
