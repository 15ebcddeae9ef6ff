"""
Twitch Helix API client.

Handles the OAuth client-credentials token exchange and the stream and user
lookups the notifier needs. Query failures are raised as ``TransportError``
(with the HTTP status when one was received) or ``ParseError``.

A run only uses ``authenticate`` and ``query_live_streams``. The user-id
lookups are public helpers for callers that track users by id.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from live_notifier.errors import AuthenticationError, ParseError, TransportError
from live_notifier.models import Credential, LiveSet, UserList

logger = logging.getLogger(__name__)

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
HELIX_URL = "https://api.twitch.tv/helix"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TwitchClient:
    """Client for the Twitch Helix API."""

    def __init__(self, client_id: str, client_secret: str):
        """
        Initialize Twitch client.

        Args:
            client_id: Application client id, also sent as the Client-ID header
            client_secret: Application client secret
        """
        self.client_id = client_id
        self.client_secret = client_secret

    async def authenticate(self) -> Credential:
        """
        Exchange the client credentials for an app access token.

        Returns:
            Issued credential

        Raises:
            AuthenticationError: If the token endpoint does not return a valid credential
        """
        logger.info("Requesting app access token")
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(TOKEN_URL, data=form) as response:
                    body = await response.text()
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthenticationError(f"Token request failed: {e}") from e

        if not 200 <= status < 300:
            raise AuthenticationError(f"Token request rejected: {status} - {body}")

        try:
            credential = Credential.model_validate_json(body)
        except ValidationError as e:
            raise AuthenticationError(f"Malformed token response: {body}") from e

        logger.info(
            f"Obtained {credential.token_type} token (valid {credential.expires_in}s)"
        )
        return credential

    def _headers(self, credential: Credential) -> Dict[str, str]:
        return {
            "Client-ID": self.client_id,
            "Authorization": credential.authorization_header,
        }

    async def _get(
        self,
        path: str,
        params: Dict[str, Any],
        credential: Credential,
        model: Type[ModelT],
    ) -> ModelT:
        """
        Issue an authenticated GET against Helix and parse the response.

        Args:
            path: Endpoint path below the Helix base URL
            params: Query parameters
            credential: Bearer credential
            model: Model to parse the response body into

        Returns:
            Parsed response

        Raises:
            TransportError: On connection failure or a non-success status
            ParseError: If the body does not match the model
        """
        url = f"{HELIX_URL}/{path}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url, params=params, headers=self._headers(credential)
                ) as response:
                    body = await response.text()
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"GET {path} failed: {e}") from e

        if not 200 <= status < 300:
            logger.debug(f"GET {path} returned {status}: {body}")
            raise TransportError(f"GET {path} returned {status}", status=status)

        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            logger.debug(f"Unparsable body from {path}: {body}")
            raise ParseError(str(e)) from e

    async def query_live_streams(self, credential: Credential, username: str) -> LiveSet:
        """
        Fetch the current live broadcasts of a user by login name.

        Args:
            credential: Bearer credential
            username: Broadcaster login

        Returns:
            Live-set for the user (empty if offline)
        """
        return await self._get("streams", {"user_login": username}, credential, LiveSet)

    async def query_live_streams_by_user_id(
        self, credential: Credential, user_id: str
    ) -> LiveSet:
        """
        Fetch the current live broadcasts of a user by numeric id.

        Args:
            credential: Bearer credential
            user_id: Broadcaster user id

        Returns:
            Live-set for the user (empty if offline)
        """
        return await self._get("streams", {"user_id": user_id}, credential, LiveSet)

    async def get_users(self, credential: Credential, login: str) -> UserList:
        """
        Look up user profiles by login name.

        Args:
            credential: Bearer credential
            login: User login

        Returns:
            Matching user profiles
        """
        return await self._get("users", {"login": login}, credential, UserList)

    async def resolve_user_id(self, credential: Credential, login: str) -> Optional[str]:
        """
        Resolve a login name to its user id.

        Args:
            credential: Bearer credential
            login: User login

        Returns:
            User id, or None if no such user exists
        """
        users = await self.get_users(credential, login)
        if not users.data:
            return None
        return users.data[0].id
