from storefront.db import get_db
from storefront.services.inventory_service import InventoryService
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/{product_id}")
def stock(product_id: int, db: Session = Depends(get_db)):
    svc = InventoryService(db)
    try:
        quantity, sold = svc.stock_of(product_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"product_id": product_id, "quantity": quantity, "sold": sold}
