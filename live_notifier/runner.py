"""
Single-shot live check.

One run loads the session state, queries the target user's live broadcasts
(re-authenticating at most once), announces the broadcasts that were not
seen in the previous run and persists the new state.

State is written at exactly three points:

- when a rejected credential is discarded,
- when a new credential has been issued,
- after the announcement was delivered (or there was nothing to announce).

The persisted live-set is the full fetch, not just the announced part, so
a broadcast that stays live across runs is announced only once. If the
webhook rejects the message the previous live-set is kept and the
broadcast is announced again on the next run.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from live_notifier.config import AppConfig
from live_notifier.discord import DiscordNotifier
from live_notifier.errors import PlatformAPIError, TransportError
from live_notifier.models import Credential, LiveSet, SessionState
from live_notifier.state import SessionStore, diff_new
from live_notifier.twitch import TwitchClient

logger = logging.getLogger(__name__)


class RunOutcome(Enum):
    """How a run ended."""

    NOTIFIED = "notified"
    NOTHING_NEW = "nothing_new"
    SEND_FAILED = "send_failed"
    FAILED = "failed"
    GAVE_UP = "gave_up"

    @property
    def ok(self) -> bool:
        """True if the run completed without an error."""
        return self in (RunOutcome.NOTIFIED, RunOutcome.NOTHING_NEW)


class LiveCheckRunner:
    """Runs one poll-diff-notify cycle for the configured user."""

    def __init__(
        self,
        config: AppConfig,
        store: Optional[SessionStore] = None,
        twitch: Optional[TwitchClient] = None,
        notifier: Optional[DiscordNotifier] = None,
    ):
        """
        Initialize the runner.

        Args:
            config: Validated application configuration
            store: Session store (default: file at config.state_path)
            twitch: Platform client (default: built from config credentials)
            notifier: Webhook notifier (default: built from config)
        """
        self.config = config
        self.store = store or SessionStore(config.state_path)
        self.twitch = twitch or TwitchClient(config.client_id, config.client_secret)
        self.notifier = notifier or DiscordNotifier(config)

    async def run(self) -> RunOutcome:
        """
        Execute the check once.

        Returns:
            Outcome of the run

        Raises:
            AuthenticationError: If a new credential was needed but could not be issued
        """
        username = self.config.target_user
        state = self.store.load()
        credential = state.auth if state is not None else None
        rejected = False

        if credential is not None:
            try:
                fresh = await self.twitch.query_live_streams(credential, username)
            except TransportError as e:
                if not e.is_unauthorized:
                    logger.error(f"Live stream query failed, not retrying: {e}")
                    return RunOutcome.FAILED
                logger.info("Stored token was rejected, re-authenticating")
                rejected = True
            except PlatformAPIError as e:
                logger.error(f"Live stream query failed, not retrying: {e}")
                return RunOutcome.FAILED
            else:
                return await self._announce(state, credential, fresh)

        state, credential = await self._refresh(state)

        try:
            fresh = await self.twitch.query_live_streams(credential, username)
        except PlatformAPIError as e:
            logger.error(f"Live stream query failed with a new token: {e}")
            return RunOutcome.GAVE_UP if rejected else RunOutcome.FAILED

        return await self._announce(state, credential, fresh)

    async def _refresh(self, state: Optional[SessionState]) -> Tuple[SessionState, Credential]:
        """
        Replace the stored credential with a freshly issued one.

        The discarded credential is persisted before the token request so a
        crash in between never leaves a rejected token behind.

        Args:
            state: Current state, if any

        Returns:
            Updated state and the new credential
        """
        state = state or SessionState()
        if state.auth is not None:
            state = state.model_copy(update={"auth": None})
            self.store.save(state)

        credential = await self.twitch.authenticate()
        state = state.model_copy(update={"auth": credential})
        self.store.save(state)
        return state, credential

    async def _announce(
        self, state: Optional[SessionState], credential: Credential, fresh: LiveSet
    ) -> RunOutcome:
        """
        Notify on broadcasts not seen before and persist the fetch.

        Args:
            state: State loaded at the start of the run
            credential: Credential that produced ``fresh``
            fresh: Live-set fetched in this run

        Returns:
            NOTIFIED, NOTHING_NEW or SEND_FAILED
        """
        new = diff_new(state, fresh)
        logger.info(
            f"{self.config.target_user}: {len(fresh.data)} live broadcast(s), "
            f"{len(new.data)} new"
        )

        outcome = RunOutcome.NOTHING_NEW
        if new.data:
            if not await self.notifier.notify(new.data):
                logger.error("Notification was not delivered, keeping previous state")
                return RunOutcome.SEND_FAILED
            outcome = RunOutcome.NOTIFIED

        self.store.save(SessionState(auth=credential, lives=fresh))
        return outcome
