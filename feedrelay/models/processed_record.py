"""
ProcessedRecord model: durable proof that an entry has been notified.

Records are written with merge semantics, so only the fields that were
explicitly set on a record are sent to the store; everything else already
stored under the same id is left untouched.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from feedrelay.models.dispatched_item import DispatchedItem


class ProcessedRecord(BaseModel):
    """Persisted state for an entry that has been delivered."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    last_update: Optional[str] = Field(default=None, alias="lastUpdate")
    title: Optional[str] = None
    content: Optional[str] = None
    link: Optional[str] = None

    @classmethod
    def from_item(cls, item: DispatchedItem) -> "ProcessedRecord":
        """Record everything we know about a delivered item."""
        return cls(
            id=item.id,
            last_update=item.updated,
            title=item.title,
            content=item.content,
            link=item.link,
        )

    def to_document(self) -> Dict[str, Any]:
        """Fields to merge into the stored document, keyed by their stored names."""
        document = self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        document["id"] = self.id
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ProcessedRecord":
        """Rebuild a record from a stored document."""
        return cls.model_validate(document)
