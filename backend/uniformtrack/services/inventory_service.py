"""Inventory Service - warehouse batches, stock checks and the uniform catalog."""

import logging
from typing import List, Optional

from uniformtrack.core.exceptions import ValidationError
from uniformtrack.schemas.batch import Batch, BatchCreate, SizeStock, StockCheck
from uniformtrack.schemas.uniform import Uniform, UniformCreate
from uniformtrack.services.reconciliation.stock_allocator import VariantKey, check_stock
from uniformtrack.services.store import DocumentStore

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for batch stock and catalog maintenance."""

    def __init__(self, store: DocumentStore):
        self.store = store

    # ===== Batches =====

    def list_batches(self) -> List[Batch]:
        return self.store.list_batches()

    def get_batch(self, batch_id: str) -> Batch:
        return self.store.get_batch(batch_id)

    def add_batch(self, data: BatchCreate) -> Batch:
        """Receive a new batch; each size starts with its initial quantity."""
        name = data.name.strip()
        if not name:
            raise ValidationError("Batch name is required")
        if not data.items:
            raise ValidationError("A batch needs at least one item")
        for item in data.items:
            if not item.sizes:
                raise ValidationError(f"Item {item.variant_type} has no sizes")
            sizes = [s.size for s in item.sizes]
            if len(set(sizes)) != len(sizes):
                raise ValidationError(f"Item {item.variant_type} lists a size more than once")
        if data.school_id:
            self.store.get_school(data.school_id)

        batch = self.store.add_batch(data.model_copy(update={"name": name}))
        logger.info(
            "Created batch %s with %d items (%d units)",
            batch.id,
            len(batch.items),
            sum(s.quantity for i in batch.items for s in i.sizes),
        )
        return batch

    def check_stock(
        self,
        uniform_id: str,
        size: str,
        requested: int,
        variant_type: Optional[str] = None,
        color: Optional[str] = None,
    ) -> StockCheck:
        if requested <= 0:
            raise ValidationError("Requested quantity must be positive")
        key = VariantKey(uniform_id, variant_type, color)
        return check_stock(self.store.list_batches(), key, size, requested)

    def deduct(self, batch_id: str, item_id: str, size: str, quantity: int) -> SizeStock:
        if quantity <= 0:
            raise ValidationError("Quantity to deduct must be positive")
        return self.store.deduct_batch_stock(batch_id, item_id, size, quantity)

    # ===== Uniform catalog =====

    def list_uniforms(self) -> List[Uniform]:
        return self.store.list_uniforms()

    def get_uniform(self, uniform_id: str) -> Uniform:
        return self.store.get_uniform(uniform_id)

    def add_uniform(self, data: UniformCreate) -> Uniform:
        name = data.name.strip()
        if not name:
            raise ValidationError("Uniform name is required")
        uniform = self.store.add_uniform(data.model_copy(update={"name": name}))
        logger.info("Added uniform %s (%s)", uniform.id, uniform.name)
        return uniform
