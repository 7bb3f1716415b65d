"""Batch stock schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from uniformtrack.schemas.base import RecordModel


class SizeStock(RecordModel):
    size: str
    quantity: int = 0
    initial_quantity: Optional[int] = None
    depleted_at: Optional[datetime] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def missing_quantity_is_zero(cls, v):
        return 0 if v is None or v == "" else v


class BatchItem(RecordModel):
    id: str
    uniform_id: str
    variant_type: str = ""
    color: str = ""
    price: Decimal = Decimal("0")
    sizes: List[SizeStock] = Field(default_factory=list)
    version: int = 1

    @field_validator("sizes", mode="before")
    @classmethod
    def default_sizes(cls, v):
        return [] if v is None else v

    def size_entry(self, size: str) -> Optional[SizeStock]:
        for entry in self.sizes:
            if entry.size == size:
                return entry
        return None


class Batch(RecordModel):
    id: str
    name: str
    school_id: Optional[str] = None
    status: str = "active"
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[BatchItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, v):
        return [] if v is None else v

    def item(self, item_id: str) -> Optional[BatchItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class SizeQuantity(RecordModel):
    size: str = Field(min_length=1, max_length=20)
    quantity: int = Field(gt=0)


class BatchItemCreate(RecordModel):
    uniform_id: str = Field(min_length=1)
    variant_type: str = Field(min_length=1)
    color: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    sizes: List[SizeQuantity]


class BatchCreate(RecordModel):
    name: str = Field(max_length=200)
    school_id: Optional[str] = None
    created_by: Optional[str] = None
    items: List[BatchItemCreate]


class StockCheck(RecordModel):
    """Result of checking a size against warehouse stock."""

    uniform_id: str
    size: str
    requested: int
    current_stock: int
    available: bool
    item_ids: List[str] = Field(default_factory=list)


class Allocation(RecordModel):
    """Quantity to take from one batch item for a distribution."""

    batch_id: str
    item_id: str
    size: str
    quantity: int


class DeductRequest(RecordModel):
    item_id: str
    size: str
    quantity: int


class BatchSummary(RecordModel):
    batch_id: str
    total_items: int
    total_quantity: int
    total_value: Decimal
    depleted_items: int


class LowStockItem(RecordModel):
    uniform_id: str
    variant_type: str
    color: str
    total_stock: int
