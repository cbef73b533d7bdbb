from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response

from core.auth import Session, current_session, require_admin
from core.errors import ItemNotFound
from core.notifications import CollectingNotifier, request_notifier
from core.service import InventoryService, get_inventory_service
from schemas.inventory import (
    ClearOut,
    ImportOut,
    ImportRequest,
    ItemListOut,
    ItemOut,
    LogEntryOut,
    NoticeOut,
    StockChangeOut,
    StockChangeRequest,
)

router = APIRouter()


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/items", response_model=List[ItemOut])
async def list_inventory_items(
    q: Optional[str] = None,
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    """
    List inventory items.

    - q filters by case-insensitive substring over article and both locations.
    """
    return [ItemOut.from_item(it) for it in inventory.search(q or "")]


@router.get("/items/empty", response_model=List[ItemOut])
async def list_empty_items(
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    """Items with at least one assigned location at zero stock."""
    return [ItemOut.from_item(it) for it in inventory.empty_items()]


@router.get("/items/barcode/{code}", response_model=ItemOut)
async def get_item_by_barcode(
    code: str,
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    item = inventory.find_by_barcode(code)
    if item is None:
        raise ItemNotFound(code, f"No item found with barcode: {code}")
    return ItemOut.from_item(item)


@router.get("/items/{item_id}", response_model=ItemOut)
async def get_inventory_item(
    item_id: str,
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    item = inventory.get_item(item_id)
    if item is None:
        raise ItemNotFound(item_id)
    return ItemOut.from_item(item)


@router.post("/items/{item_id}/stock", response_model=StockChangeOut)
async def change_stock(
    item_id: str,
    payload: StockChangeRequest,
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    """Add or remove stock at one of the item's locations and log the change."""
    mutation = await inventory.apply_delta(
        item_id, payload.resolved_delta(), payload.location, session, notifier=notifier
    )
    return StockChangeOut.from_mutation(mutation, notifier.notices)


@router.get("/logs", response_model=List[LogEntryOut])
async def list_logs(
    limit: Optional[int] = None,
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    """Change log, most recent first."""
    logs = inventory.logs()
    if limit is not None and limit >= 0:
        logs = logs[:limit]
    return [LogEntryOut.from_entry(e) for e in logs]


@router.post("/refresh", response_model=ItemListOut)
async def refresh_inventory(
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    items = await inventory.refresh(notifier=notifier)
    return ItemListOut(
        items=[ItemOut.from_item(it) for it in items],
        notices=[NoticeOut.from_notice(n) for n in notifier.notices],
    )


@router.post("/import", response_model=ImportOut)
async def import_items(
    payload: ImportRequest,
    session: Session = Depends(require_admin),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    """Replace every item with the rows of a comma- or tab-separated text."""
    items = await inventory.import_csv(payload.data, session, notifier=notifier)
    return ImportOut(imported=len(items), notices=[NoticeOut.from_notice(n) for n in notifier.notices])


@router.get("/export/items.csv", response_class=Response)
async def export_items_csv(
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    return _csv_response(inventory.export_items_csv(), "inventory.csv")


@router.get("/export/logs.csv", response_class=Response)
async def export_logs_csv(
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    return _csv_response(inventory.export_logs_csv(), "inventory-log.csv")


@router.delete("/all", response_model=ClearOut, status_code=status.HTTP_200_OK)
async def clear_inventory(
    session: Session = Depends(require_admin),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    """Delete all items and all log entries (admin only, irreversible)."""
    counts = await inventory.clear_all(session, notifier=notifier)
    return ClearOut(**counts, notices=[NoticeOut.from_notice(n) for n in notifier.notices])
