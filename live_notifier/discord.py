"""
Discord webhook notifier for new live broadcasts.

Builds one embed per broadcast and posts them to a webhook. Stream
thumbnails can be downloaded and uploaded as attachments; a thumbnail that
cannot be fetched only drops the attachment, never the notification.
"""

import asyncio
import json
import logging
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

import aiohttp

from live_notifier.config import AppConfig
from live_notifier.models import LiveBroadcast

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "unknown title"
DEFAULT_IMAGE_EXTENSION = "jpg"
LIVE_COLOR = 9520895  # Twitch purple


class DiscordEmbed:
    """Builder for Discord embed objects."""

    def __init__(
        self,
        title: str,
        description: Optional[str] = None,
        url: Optional[str] = None,
        color: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ):
        """
        Initialize a Discord embed.

        Args:
            title: Embed title
            description: Embed description
            url: Link opened when the title is clicked
            color: Embed color (decimal)
            timestamp: Timestamp for the embed
        """
        self.data: Dict[str, Any] = {"title": title}

        if description:
            self.data["description"] = description

        if url:
            self.data["url"] = url

        if color is not None:
            self.data["color"] = color

        if timestamp:
            self.data["timestamp"] = timestamp.isoformat()

    def set_image(self, url: str) -> "DiscordEmbed":
        """
        Set the large embed image.

        Args:
            url: Image URL or ``attachment://<filename>``

        Returns:
            Self for method chaining
        """
        self.data["image"] = {"url": url}
        return self

    def set_footer(self, text: str, icon_url: Optional[str] = None) -> "DiscordEmbed":
        """
        Set embed footer.

        Args:
            text: Footer text
            icon_url: Optional footer icon URL

        Returns:
            Self for method chaining
        """
        self.data["footer"] = {"text": text}
        if icon_url:
            self.data["footer"]["icon_url"] = icon_url
        return self

    def to_dict(self, image_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Convert embed to dictionary for JSON serialization.

        Args:
            image_url: Replacement for the image URL, e.g. an attachment reference
        """
        data = dict(self.data)
        if image_url:
            data["image"] = {"url": image_url}
        return data


@dataclass
class NotificationPayload:
    """Webhook message announcing a set of new broadcasts."""

    content: str
    broadcasts: List[LiveBroadcast]
    embeds: List[DiscordEmbed]
    avatar_url: Optional[str] = None
    username: Optional[str] = None

    def to_dict(self, attachments: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Build the webhook JSON body.

        Args:
            attachments: Broadcast id -> uploaded filename. Embeds of these
                broadcasts reference the upload instead of the remote image.

        Returns:
            JSON-serializable payload
        """
        attachments = attachments or {}
        payload: Dict[str, Any] = {"content": self.content}

        if self.avatar_url:
            payload["avatar_url"] = self.avatar_url

        if self.username:
            payload["username"] = self.username

        embeds = []
        for broadcast, embed in zip(self.broadcasts, self.embeds):
            filename = attachments.get(broadcast.id)
            embeds.append(embed.to_dict(f"attachment://{filename}" if filename else None))
        payload["embeds"] = embeds

        if attachments:
            payload["attachments"] = [
                {"id": index, "filename": filename}
                for index, filename in enumerate(attachments.values())
            ]

        return payload


def embed_title(broadcast: LiveBroadcast) -> str:
    """Stream title, falling back to the category name and then a placeholder."""
    return broadcast.title or broadcast.game_name or UNKNOWN_TITLE


def thumbnail_url(template: str) -> str:
    """Fill the size placeholders of a thumbnail template with 0 (default size)."""
    return template.replace("{width}", "0").replace("{height}", "0")


def attachment_filename(broadcast: LiveBroadcast) -> str:
    """
    Local filename for a broadcast's uploaded thumbnail.

    Args:
        broadcast: Broadcast the thumbnail belongs to

    Returns:
        ``{broadcast_id}.{extension}``, extension taken from the thumbnail URL
    """
    extension = ""
    if broadcast.thumbnail_url:
        path = urlsplit(thumbnail_url(broadcast.thumbnail_url)).path
        extension = PurePosixPath(path).suffix.lstrip(".")
    return f"{broadcast.id}.{extension or DEFAULT_IMAGE_EXTENSION}"


class DiscordNotifier:
    """Sends new-broadcast notifications to a Discord webhook."""

    def __init__(self, config: AppConfig):
        """
        Initialize Discord notifier.

        Args:
            config: Application configuration
        """
        self.config = config
        self.webhook_url = config.discord

    def build_payload(self, broadcasts: Iterable[LiveBroadcast]) -> Optional[NotificationPayload]:
        """
        Build the announcement for a set of new broadcasts.

        Args:
            broadcasts: Newly detected broadcasts

        Returns:
            Payload, or None if there is nothing to announce
        """
        broadcasts = list(broadcasts)
        if not broadcasts:
            return None

        embeds = []
        for broadcast in broadcasts:
            embed = DiscordEmbed(
                title=embed_title(broadcast),
                description=broadcast.game_name,
                url=broadcast.channel_url,
                color=LIVE_COLOR,
                timestamp=broadcast.started_at,
            )
            embed.set_footer(broadcast.user_name or broadcast.user_login)
            if broadcast.thumbnail_url:
                embed.set_image(thumbnail_url(broadcast.thumbnail_url))
            embeds.append(embed)

        return NotificationPayload(
            content=self.config.content,
            broadcasts=broadcasts,
            embeds=embeds,
            avatar_url=self.config.avatar_url,
            username=self.config.username,
        )

    async def _fetch_thumbnail(
        self, session: aiohttp.ClientSession, broadcast: LiveBroadcast
    ) -> Tuple[str, Optional[bytes]]:
        url = thumbnail_url(broadcast.thumbnail_url)
        try:
            async with session.get(
                url, timeout=aiohttp.ClientTimeout(total=self.config.thumbnail_timeout)
            ) as response:
                if not 200 <= response.status < 300:
                    logger.debug(f"Thumbnail {url} returned {response.status}")
                    return broadcast.id, None
                return broadcast.id, await response.read()
        except asyncio.TimeoutError:
            logger.debug(f"Thumbnail fetch timed out: {url}")
        except aiohttp.ClientError as e:
            logger.debug(f"Thumbnail fetch failed: {url}: {e}")
        return broadcast.id, None

    async def fetch_thumbnails(self, broadcasts: Iterable[LiveBroadcast]) -> Dict[str, bytes]:
        """
        Download thumbnails for all broadcasts concurrently.

        Args:
            broadcasts: Broadcasts to fetch images for

        Returns:
            Broadcast id -> image bytes, for every fetch that succeeded
        """
        targets = [broadcast for broadcast in broadcasts if broadcast.thumbnail_url]
        if not targets:
            return {}

        async with aiohttp.ClientSession() as session:
            results = await asyncio.gather(
                *(self._fetch_thumbnail(session, broadcast) for broadcast in targets)
            )

        thumbnails = {broadcast_id: data for broadcast_id, data in results if data}
        logger.debug(f"Fetched {len(thumbnails)}/{len(targets)} thumbnails")
        return thumbnails

    def _build_form(
        self, payload: NotificationPayload, thumbnails: Dict[str, bytes]
    ) -> aiohttp.FormData:
        attachments = {
            broadcast.id: attachment_filename(broadcast)
            for broadcast in payload.broadcasts
            if broadcast.id in thumbnails
        }

        form = aiohttp.FormData()
        form.add_field(
            "payload_json",
            json.dumps(payload.to_dict(attachments)),
            content_type="application/json",
        )
        for index, (broadcast_id, filename) in enumerate(attachments.items()):
            content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
            form.add_field(
                f"files[{index}]",
                thumbnails[broadcast_id],
                filename=filename,
                content_type=content_type,
            )
        return form

    @staticmethod
    async def _retry_after(response: aiohttp.ClientResponse) -> Any:
        """Retry delay from a 429 body, 1 if the body is not a JSON object."""
        try:
            body = await response.json(content_type=None)
        except ValueError:
            return 1
        if not isinstance(body, dict):
            return 1
        return body.get("retry_after", 1)

    async def send(
        self, payload: NotificationPayload, thumbnails: Optional[Dict[str, bytes]] = None
    ) -> bool:
        """
        Post a payload to the webhook.

        Sends multipart form data with the images attached when any
        thumbnail bytes are given, a plain JSON body otherwise.

        Args:
            payload: Message to send
            thumbnails: Broadcast id -> image bytes

        Returns:
            True if successful, False otherwise
        """
        if not self.webhook_url:
            logger.warning("Discord webhook URL not configured")
            return False

        thumbnails = {k: v for k, v in (thumbnails or {}).items() if v}
        if thumbnails:
            request_kwargs: Dict[str, Any] = {"data": self._build_form(payload, thumbnails)}
        else:
            request_kwargs = {"json": payload.to_dict()}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.webhook_url, **request_kwargs) as response:
                    if 200 <= response.status < 300:
                        logger.info(
                            f"Discord notification sent for {len(payload.broadcasts)} "
                            f"broadcast(s) ({response.status})"
                        )
                        return True
                    elif response.status == 429:
                        # Rate limited by Discord
                        retry_after = await self._retry_after(response)
                        logger.warning(f"Discord rate limit hit, retry after {retry_after}s")
                        return False
                    else:
                        error_text = await response.text()
                        logger.error(
                            f"Discord notification failed: {response.status} - {error_text}"
                        )
                        return False

        except asyncio.TimeoutError:
            logger.error("Discord notification timed out")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Discord notification failed: {e}")
            return False

    async def notify(self, broadcasts: Iterable[LiveBroadcast]) -> bool:
        """
        Announce new broadcasts.

        Args:
            broadcasts: Newly detected broadcasts

        Returns:
            True if the message was delivered or there was nothing to send
        """
        payload = self.build_payload(broadcasts)
        if payload is None:
            logger.debug("No new broadcasts, nothing to send")
            return True

        thumbnails: Dict[str, bytes] = {}
        if self.config.attach_thumbnails:
            thumbnails = await self.fetch_thumbnails(payload.broadcasts)

        return await self.send(payload, thumbnails)
