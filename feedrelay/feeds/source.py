"""
Feed source for feed relay.

Fetches a channel's feed over HTTP and parses it with feedparser into
FeedEntry records. Transient HTTP failures (transport errors, 429, 5xx) are
retried with exponential backoff; anything that still fails becomes a
SourceError and the channel run stops before any dispatch.
"""
import asyncio
from typing import Any, List, Mapping, Optional

import feedparser
import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from feedrelay.config import ChannelConfig, SourceConfig
from feedrelay.exceptions import SourceError
from feedrelay.models.feed_entry import FeedEntry

# Set up structured logger
logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "Accept": "application/rss+xml,application/atom+xml,application/xml;q=0.9,text/xml;q=0.8,*/*;q=0.1",
}


def _is_transient(exception: BaseException) -> bool:
    """Transport errors, rate limiting and server errors are worth retrying."""
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        return status == 429 or status >= 500
    return isinstance(exception, httpx.TransportError)


async def fetch_feed(client: httpx.AsyncClient, url: str, config: SourceConfig) -> bytes:
    """
    Fetch raw feed content.

    Raises:
        httpx.HTTPError: If the request still fails after all retries
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, config.retry_attempts)),
        wait=wait_exponential(min=config.retry_min_wait, max=config.retry_max_wait),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    ):
        with attempt:
            logger.debug("Fetching feed", url=url, attempt=attempt.retry_state.attempt_number)
            response = await client.get(
                url,
                headers={**DEFAULT_HEADERS, "User-Agent": config.user_agent},
                timeout=config.timeout_seconds,
                follow_redirects=True,
            )
            response.raise_for_status()
    return response.content


def _entry_content(entry: Mapping[str, Any]) -> str:
    """Full content if the feed has it, otherwise the summary."""
    for content in entry.get("content") or []:
        value = content.get("value") if isinstance(content, Mapping) else None
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def entry_from_parsed(entry: Mapping[str, Any]) -> Optional[FeedEntry]:
    """
    Map a feedparser entry to a FeedEntry.

    Returns None for entries with nothing usable as an identifier.
    """
    entry_id = entry.get("id") or entry.get("guid") or entry.get("link")
    if not entry_id or not str(entry_id).strip():
        return None

    return FeedEntry(
        id=str(entry_id),
        title=entry.get("title") or "",
        link=entry.get("link") or "",
        content=_entry_content(entry),
        updated=entry.get("updated") or entry.get("published") or "",
    )


def parse_entries(content: bytes, url: str = "") -> List[FeedEntry]:
    """
    Parse raw feed content into FeedEntry records.

    Raises:
        SourceError: If the content is not a usable feed
    """
    feed = feedparser.parse(content)

    if feed.get("bozo") and not feed.get("entries"):
        error = feed.get("bozo_exception")
        raise SourceError("failed parsing feed", {"url": url, "error": str(error)})

    entries = []
    for parsed in feed.get("entries", []):
        entry = entry_from_parsed(parsed)
        if entry is None:
            logger.warning("Skipping feed entry without identifier", url=url, title=parsed.get("title"))
            continue
        entries.append(entry)

    logger.debug("Feed parsed", url=url, entry_count=len(entries))
    return entries


async def fetch_entries(
    channel: ChannelConfig,
    client: httpx.AsyncClient,
    config: SourceConfig,
) -> List[FeedEntry]:
    """
    Fetch and parse a channel's feed.

    Args:
        channel: Channel whose feed to read
        client: HTTP client to use
        config: Source configuration

    Returns:
        List[FeedEntry]: Entries in feed order

    Raises:
        SourceError: If the feed cannot be fetched or parsed
    """
    try:
        content = await fetch_feed(client, channel.url, config)
    except httpx.HTTPError as e:
        status_code = None
        if isinstance(e, httpx.HTTPStatusError):
            status_code = e.response.status_code
        logger.error(
            "HTTP error fetching feed",
            feed_name=channel.name,
            url=channel.url,
            status_code=status_code,
            error=str(e),
        )
        raise SourceError(
            "failed fetching feed",
            {"url": channel.url, "status_code": status_code, "error": str(e)},
        ) from e

    # feedparser is CPU-bound, keep it off the event loop
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, parse_entries, content, channel.url)
