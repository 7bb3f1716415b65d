"""Distribution intent routes - inspect and retry unfinished uniform logs."""

from typing import List, Optional

from fastapi import APIRouter, Request

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.distribution import DistributionIntentRecord, DistributionResult
from uniformtrack.services.distribution_service import DistributionService

router = APIRouter()


@router.get("/intents", response_model=List[DistributionIntentRecord])
@limiter.limit("60/minute")
def list_intents(request: Request, store: Store, status: Optional[str] = None):
    return DistributionService(store).list_intents(status)


@router.get("/intents/open", response_model=List[DistributionIntentRecord])
@limiter.limit("60/minute")
def list_open_intents(request: Request, store: Store):
    """Pending or failed intents awaiting retry or manual reconciliation."""
    return DistributionService(store).list_open_intents()


@router.get("/intents/{intent_id}", response_model=DistributionIntentRecord)
@limiter.limit("60/minute")
def get_intent(request: Request, intent_id: str, store: Store):
    return DistributionService(store).get_intent(intent_id)


@router.post("/intents/{intent_id}/retry", response_model=DistributionResult)
@limiter.limit("30/minute")
def retry_intent(request: Request, intent_id: str, store: Store):
    """Replay an intent; already-applied intents are only marked committed."""
    return DistributionService(store).retry_intent(intent_id)
