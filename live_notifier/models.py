"""Data models for Twitch Helix responses and persisted session state."""

from datetime import datetime
from typing import List, Optional, Set

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """App access token issued by the OAuth client-credentials flow."""

    access_token: str
    expires_in: int
    token_type: str

    @property
    def authorization_header(self) -> str:
        """Value for the Authorization header."""
        return f"Bearer {self.access_token}"


class LiveBroadcast(BaseModel):
    """One active broadcast as returned by ``/helix/streams``.

    The ``id`` is only stable for a single continuous broadcast; going live
    again yields a new id even for the same user.
    """

    id: str = Field(..., description="Broadcast id")
    user_id: str
    user_login: str
    user_name: Optional[str] = None
    game_id: Optional[str] = None
    game_name: Optional[str] = None
    type: str = Field("live", description="Broadcast type, 'live' or empty on error")
    title: Optional[str] = None
    viewer_count: int = 0
    started_at: datetime
    thumbnail_url: Optional[str] = None
    is_mature: bool = False

    @property
    def channel_url(self) -> str:
        """Deep link to the broadcaster's channel page."""
        return f"https://www.twitch.tv/{self.user_login}"


class LiveSet(BaseModel):
    """Helix list envelope holding the broadcasts of one query."""

    data: List[LiveBroadcast] = Field(default_factory=list)

    def ids(self) -> Set[str]:
        """Broadcast ids contained in this set."""
        return {broadcast.id for broadcast in self.data}


class UserProfile(BaseModel):
    """User record from ``/helix/users``."""

    id: str
    login: str
    display_name: Optional[str] = None
    type: Optional[str] = None
    broadcaster_type: Optional[str] = None
    description: Optional[str] = None
    profile_image_url: Optional[str] = None
    offline_image_url: Optional[str] = None
    email: Optional[str] = None
    view_count: Optional[int] = None
    created_at: datetime


class UserList(BaseModel):
    """Helix list envelope for user lookups."""

    data: List[UserProfile] = Field(default_factory=list)


class SessionState(BaseModel):
    """State carried between runs.

    ``lives`` holds the last fetched live-set whose new members were
    notified successfully. ``auth`` is the last credential that was issued.
    """

    auth: Optional[Credential] = None
    lives: Optional[LiveSet] = None
