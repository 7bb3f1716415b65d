# Document store module

import logging

from sqlalchemy.orm import Session

from uniformtrack.core.config import settings
from uniformtrack.services.store.store_base import DocumentStore
from uniformtrack.services.store.sql_store import SqlDocumentStore
from uniformtrack.services.store.firestore_store import FirestoreDocumentStore

logger = logging.getLogger(__name__)


def get_document_store(db: Session) -> DocumentStore:
    """Get the document store selected by configuration.

    DOCUMENT_STORE=firestore uses FirestoreDocumentStore; anything else
    uses SqlDocumentStore on the request's session.
    """
    if settings.document_store == "firestore":
        return FirestoreDocumentStore()
    return SqlDocumentStore(db)


__all__ = [
    "DocumentStore",
    "SqlDocumentStore",
    "FirestoreDocumentStore",
    "get_document_store",
]
