"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from uniformtrack.db.session import DbSession
from uniformtrack.services.store import DocumentStore, get_document_store


def get_store(db: DbSession) -> DocumentStore:
    """Document store for the current request."""
    return get_document_store(db)


# Type alias for dependency injection
Store = Annotated[DocumentStore, Depends(get_store)]
