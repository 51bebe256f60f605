# vlog_portal/services/youtube_service.py
"""
YouTube helpers: identifier extraction and best-effort title lookup.

The title lookup goes through a public oEmbed endpoint, so no YouTube Data
API key is needed. Unlisted/private videos are accepted: a failed lookup
only means the record gets a placeholder title.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from vlog_portal.core.config import settings
from vlog_portal.core.timeouts import race
from vlog_portal.services.best_effort import BestEffort

logger = logging.getLogger(__name__)

VIDEO_ID_LENGTH = 11
UNKNOWN_TITLE = "YouTube Video"

_VIDEO_ID_RE = re.compile(
    r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*"
)


@dataclass(frozen=True)
class VideoDetails:
    video_id: str
    title: str
    privacy_status: str  # 'public' when the lookup worked, otherwise 'unknown'


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """
    Return the 11-character video id in `url`, or None.

    Accepts watch?v=, youtu.be/, embed/ and the legacy v/ and u/<x>/ forms.
    """
    if not url:
        return None
    match = _VIDEO_ID_RE.match(url.strip())
    if match and len(match.group(2)) == VIDEO_ID_LENGTH:
        return match.group(2)
    return None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


async def _fetch_title(client: httpx.AsyncClient, video_id: str) -> Optional[str]:
    response = await client.get(
        settings.OEMBED_ENDPOINT, params={"url": watch_url(video_id)}
    )
    if not response.is_success:
        logger.warning(
            "oEmbed lookup for %s returned HTTP %s", video_id, response.status_code
        )
        return None
    data = response.json()
    if isinstance(data, dict) and data.get("title"):
        return str(data["title"])
    return None


async def get_video_details(
    video_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> BestEffort[VideoDetails]:
    """
    Look up the video title. Never raises.

    Network errors, non-2xx responses, malformed payloads and the
    METADATA_TIMEOUT_SECONDS deadline all degrade to a placeholder title
    with privacy_status 'unknown'. No retries.
    """
    timeout = settings.METADATA_TIMEOUT_SECONDS
    title: Optional[str] = None
    reason = "no_title"
    try:
        if client is not None:
            title = await race(_fetch_title(client, video_id), timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                title = await race(_fetch_title(own_client, video_id), timeout)
    except asyncio.TimeoutError:
        reason = "timeout"
    except httpx.HTTPError as exc:
        reason = "network_error"
        logger.warning("oEmbed lookup for %s failed: %s", video_id, exc)
    except ValueError as exc:
        reason = "malformed_payload"
        logger.warning("oEmbed lookup for %s returned bad JSON: %s", video_id, exc)

    if title:
        return BestEffort.success(
            VideoDetails(video_id=video_id, title=title, privacy_status="public")
        )

    logger.warning(
        "Could not fetch title for %s (%s), using placeholder", video_id, reason
    )
    return BestEffort.fallback(
        VideoDetails(video_id=video_id, title=UNKNOWN_TITLE, privacy_status="unknown"),
        reason,
    )
