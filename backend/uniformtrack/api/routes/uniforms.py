"""Uniform catalog routes."""

from typing import List

from fastapi import APIRouter, Request, status

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.uniform import Uniform, UniformCreate
from uniformtrack.services.inventory_service import InventoryService

router = APIRouter()


@router.get("/", response_model=List[Uniform])
@limiter.limit("60/minute")
def list_uniforms(request: Request, store: Store):
    return InventoryService(store).list_uniforms()


@router.post("/", response_model=Uniform, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_uniform(request: Request, store: Store, data: UniformCreate):
    return InventoryService(store).add_uniform(data)


@router.get("/{uniform_id}", response_model=Uniform)
@limiter.limit("60/minute")
def get_uniform(request: Request, uniform_id: str, store: Store):
    return InventoryService(store).get_uniform(uniform_id)
