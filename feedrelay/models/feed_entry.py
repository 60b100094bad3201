"""
FeedEntry model for entries parsed out of a feed.

A FeedEntry is produced by the feed source and is never modified afterwards;
its identifier is the key used for deduplication against the record store.
"""
from pydantic import BaseModel, ConfigDict, field_validator


class FeedEntry(BaseModel):
    """One entry of a parsed RSS/Atom feed."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    link: str = ""
    content: str = ""
    updated: str = ""

    @field_validator("id")
    @classmethod
    def ensure_id(cls, v: str) -> str:
        """The identifier is the record key, so it cannot be blank."""
        if not v or not v.strip():
            raise ValueError("Feed entry id must be a non-empty string")
        return v
