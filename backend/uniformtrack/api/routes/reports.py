"""Report routes - dashboard and stock alerts."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.batch import LowStockItem
from uniformtrack.schemas.report import DashboardSummary
from uniformtrack.services.report_service import ReportService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardSummary)
@limiter.limit("60/minute")
def dashboard(request: Request, store: Store):
    return ReportService(store).dashboard()


@router.get("/low-stock", response_model=List[LowStockItem])
@limiter.limit("60/minute")
def low_stock(request: Request, store: Store, threshold: Optional[int] = Query(None, ge=0)):
    """Variants with stock left but at or under the threshold."""
    return ReportService(store).low_stock(threshold)
