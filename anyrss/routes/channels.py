"""Channel and feed item routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from anyrss.models import Channel, Feed, FeedDraft
from anyrss.routes.deps import channel_path, feed_id_path, get_feed_service
from anyrss.services import FeedService

router = APIRouter()

ChannelName = Annotated[str, Depends(channel_path)]
FeedId = Annotated[int, Depends(feed_id_path)]
Service = Annotated[FeedService, Depends(get_feed_service)]


class ChannelRequest(BaseModel):
    """Channel creation request."""

    name: str


# Handlers are plain functions: they block on storage and on the ID generator,
# so FastAPI runs them in its threadpool.


@router.put("/c")
def create_channel(request: ChannelRequest, service: Service) -> Channel:
    """Create a new channel."""
    return service.create_channel(request.name)


@router.get("/c")
def list_channels(service: Service) -> list[Channel]:
    """List all channels in name order."""
    return service.list_channels()


@router.get("/c/{channel}")
def list_feeds(
    channel: ChannelName,
    service: Service,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int | None, Query(ge=0)] = None,
) -> list[Feed]:
    """
    List a channel's feed items, newest first.

    Parameters
    ----------
    channel : str
        Channel name.
    offset : int
        Number of items to skip.
    limit : int | None
        Maximum number of items; defaults to the configured list limit.
    """
    if limit is None:
        limit = service.feed_list_limit
    return service.list_feeds(channel, offset, limit)


@router.post("/c/{channel}")
def post_feed(channel: ChannelName, draft: FeedDraft, service: Service) -> Feed:
    """Post a feed item to a channel."""
    return service.post_feed(channel, draft)


@router.get("/c/{channel}/{feed_id}")
def get_feed(channel: ChannelName, feed_id: FeedId, service: Service) -> Feed:
    """Get one feed item."""
    return service.get_feed(channel, feed_id)


@router.delete("/c/{channel}/{feed_id}", status_code=204)
def remove_feed(channel: ChannelName, feed_id: FeedId, service: Service) -> Response:
    """Remove one feed item."""
    service.remove_feed(channel, feed_id)
    return Response(status_code=204)


@router.get("/rss/{channel}")
def channel_rss(channel: ChannelName, service: Service) -> Response:
    """Render a channel as an RSS document."""
    rss = service.render_rss(channel, link=f"/rss/{channel}")
    return Response(content=rss, media_type="application/rss+xml")
