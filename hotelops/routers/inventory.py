"""
Inventory routes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff, ServiceCategory, InventoryTransactionType
from hotelops.models.schemas import (
    BulkImportRequest, InventoryTransactionResponse, LaundryTicket, LiquidateRequest,
    RoomRecipeResponse, RoomRecipeUpsert, ServiceItemCreate, ServiceItemResponse, ServiceItemUpdate,
    StandardInventoryEntry
)
from hotelops.services.inventory_service import InventoryService
from hotelops.security.auth import get_current_user, require_housekeeping, require_manager, require_staff
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/items", response_model=List[ServiceItemResponse])
def list_items(
    category: Optional[ServiceCategory] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return InventoryService(db).get_items(category, search)


@router.get("/items/low-stock", response_model=List[ServiceItemResponse])
def list_low_stock(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return InventoryService(db).get_low_stock()


@router.get("/items/{item_id}", response_model=ServiceItemResponse)
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    item = InventoryService(db).get_item(item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service item not found")
    return item


@router.post("/items", response_model=ServiceItemResponse)
def create_item(
    data: ServiceItemCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return InventoryService(db).create_item(data)
    except ValueError as e:
        raise http_error(e)


@router.put("/items/{item_id}", response_model=ServiceItemResponse)
def update_item(
    item_id: int,
    data: ServiceItemUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return InventoryService(db).update_item(item_id, data)
    except ValueError as e:
        raise http_error(e)


@router.delete("/items/{item_id}")
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        InventoryService(db).delete_item(item_id)
        return {"message": "Service item deleted"}
    except ValueError as e:
        raise http_error(e)


@router.post("/import", response_model=List[InventoryTransactionResponse])
def bulk_import(
    data: BulkImportRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """Receive purchased stock; a priced delivery is also booked as an expense"""
    try:
        return InventoryService(db).bulk_import(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.get("/transactions", response_model=List[InventoryTransactionResponse])
def list_transactions(
    item_id: Optional[int] = None,
    tx_type: Optional[InventoryTransactionType] = None,
    facility_name: Optional[str] = None,
    limit: int = 200,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return InventoryService(db).get_transactions(item_id, tx_type, facility_name, limit)


# ============== Laundry & write-offs ==============

@router.post("/laundry/send", response_model=List[InventoryTransactionResponse])
def send_laundry(
    data: LaundryTicket,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    """Clean stock to the laundry pile; each line is capped at the stock on hand"""
    try:
        return InventoryService(db).send_laundry(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.post("/laundry/receive", response_model=List[InventoryTransactionResponse])
def receive_laundry(
    data: LaundryTicket,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    """Washed items back to clean stock; damaged pieces leave the asset count"""
    try:
        return InventoryService(db).receive_laundry(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.post("/liquidate", response_model=InventoryTransactionResponse)
def liquidate(
    data: LiquidateRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return InventoryService(db).liquidate(data, current_user)
    except ValueError as e:
        raise http_error(e)


# ============== Room recipes ==============

def _recipe_response(service: InventoryService, recipe) -> RoomRecipeResponse:
    return RoomRecipeResponse(
        id=recipe.id,
        room_type=recipe.room_type,
        description=recipe.description,
        items=service.recipe_items(recipe),
    )


@router.get("/recipes", response_model=List[RoomRecipeResponse])
def list_recipes(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = InventoryService(db)
    return [_recipe_response(service, r) for r in service.get_recipes()]


@router.put("/recipes", response_model=RoomRecipeResponse)
def upsert_recipe(
    data: RoomRecipeUpsert,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    service = InventoryService(db)
    try:
        return _recipe_response(service, service.upsert_recipe(data))
    except ValueError as e:
        raise http_error(e)


@router.delete("/recipes/{room_type}")
def delete_recipe(
    room_type: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        InventoryService(db).delete_recipe(room_type)
        return {"message": "Room recipe deleted"}
    except ValueError as e:
        raise http_error(e)


@router.get("/standard", response_model=List[StandardInventoryEntry])
def standard_stock(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Owned quantity per item against the sum of every room's recipe, shortages first"""
    return InventoryService(db).standard_stock()
