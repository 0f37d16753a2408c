"""Request dependencies."""

from typing import Annotated

from fastapi import Path, Request

from anyrss.logging import bind_request_context
from anyrss.services import FeedService


def get_feed_service(request: Request) -> FeedService:
    """Return the FeedService created by the application lifespan."""
    return request.app.state.feed_service


# The path dependencies are async so they run in the request's own context:
# fields bound here are visible to the sync handler that runs afterwards.


async def channel_path(channel: Annotated[str, Path(pattern=r"^[a-zA-Z0-9]+$")]) -> str:
    """Validate the channel path segment and add it to the log context."""
    bind_request_context(channel=channel)
    return channel


async def feed_id_path(feed_id: Annotated[int, Path()]) -> int:
    """Add the feed id path segment to the log context."""
    bind_request_context(feed_id=feed_id)
    return feed_id
