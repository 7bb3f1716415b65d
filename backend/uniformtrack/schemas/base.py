"""Shared pydantic configuration for document-shaped records.

Records travel to and from the document store and the mobile client with
camelCase field names (``uniformPolicy``, ``quantityPerStudent``); Python code
uses snake_case attributes. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Base for every record and report schema."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """Dump in the store's wire shape (camelCase, JSON-safe values)."""
        return self.model_dump(by_alias=True, mode="json")
