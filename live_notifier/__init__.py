"""
Twitch live notifier.

Checks whether a Twitch broadcaster is live and posts new broadcasts to a
Discord webhook. Each invocation runs once; previously announced broadcasts
are remembered in a small state file so they are not announced twice.

Main components:
- LiveCheckRunner: Poll, diff and notify in one run
- TwitchClient: Helix API client (token exchange, stream and user lookups)
- DiscordNotifier: Webhook message builder and sender
- SessionStore: Persisted credential and last live-set
- AppConfig: Configuration management

Example:
    from live_notifier import AppConfig, LiveCheckRunner

    config = AppConfig.from_file(Path("config.json"))
    outcome = asyncio.run(LiveCheckRunner(config).run())
"""

from .config import AppConfig
from .discord import DiscordNotifier
from .runner import LiveCheckRunner, RunOutcome
from .state import SessionStore, diff_new
from .twitch import TwitchClient

__version__ = "1.0.0"
__all__ = [
    "AppConfig",
    "DiscordNotifier",
    "LiveCheckRunner",
    "RunOutcome",
    "SessionStore",
    "TwitchClient",
    "diff_new",
]
