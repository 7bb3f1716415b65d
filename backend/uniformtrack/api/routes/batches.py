"""Batch routes - warehouse stock."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request, status

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.batch import (
    Batch,
    BatchCreate,
    BatchSummary,
    DeductRequest,
    SizeStock,
    StockCheck,
)
from uniformtrack.services.inventory_service import InventoryService
from uniformtrack.services.report_service import ReportService

router = APIRouter()


@router.get("/", response_model=List[Batch])
@limiter.limit("60/minute")
def list_batches(request: Request, store: Store):
    """List batches, oldest first."""
    return InventoryService(store).list_batches()


@router.post("/", response_model=Batch, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_batch(request: Request, store: Store, data: BatchCreate):
    return InventoryService(store).add_batch(data)


@router.get("/stock-check", response_model=StockCheck)
@limiter.limit("60/minute")
def stock_check(
    request: Request,
    store: Store,
    uniform_id: str = Query(..., alias="uniformId"),
    size: str = Query(...),
    quantity: int = Query(1),
    variant_type: Optional[str] = Query(None, alias="variantType"),
    color: Optional[str] = Query(None),
):
    """Stock of one size summed across every batch."""
    return InventoryService(store).check_stock(
        uniform_id, size, quantity, variant_type=variant_type, color=color
    )


@router.get("/{batch_id}", response_model=Batch)
@limiter.limit("60/minute")
def get_batch(request: Request, batch_id: str, store: Store):
    return InventoryService(store).get_batch(batch_id)


@router.get("/{batch_id}/summary", response_model=BatchSummary)
@limiter.limit("60/minute")
def get_batch_summary(request: Request, batch_id: str, store: Store):
    return ReportService(store).batch_summary(batch_id)


@router.post("/{batch_id}/deduct", response_model=SizeStock)
@limiter.limit("30/minute")
def deduct_stock(request: Request, batch_id: str, store: Store, data: DeductRequest):
    """Deduct stock from one size of one item. Rejected whole when short."""
    return InventoryService(store).deduct(batch_id, data.item_id, data.size, data.quantity)
