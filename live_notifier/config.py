"""Configuration management for the live notifier.

Settings come from a JSON config file. A few values may be overridden
through environment variables so the same file can be reused across
deployments.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from live_notifier.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_STATE_PATH = "state.json"
WEBHOOK_URL_PREFIX = "https://discord.com/api/webhooks/"
DEFAULT_CONTENT = "A live broadcast has started"
DEFAULT_THUMBNAIL_TIMEOUT = 5.0


@dataclass
class AppConfig:
    """Configuration for a single notifier run.

    Attributes:
        client_id: Twitch application client id
        client_secret: Twitch application client secret
        target_user: Login name of the broadcaster to watch
        discord: Discord webhook URL
        content: Message text posted above the embeds
        avatar_url: Optional avatar override for the webhook message
        username: Optional username override for the webhook message
        attach_thumbnails: Upload thumbnails as attachments when available
        thumbnail_timeout: Total timeout in seconds for each thumbnail fetch
        state_path: Path of the persisted session state file
    """

    client_id: str
    client_secret: str
    discord: str
    target_user: str = ""
    content: str = DEFAULT_CONTENT
    avatar_url: Optional[str] = None
    username: Optional[str] = None
    attach_thumbnails: bool = True
    thumbnail_timeout: float = DEFAULT_THUMBNAIL_TIMEOUT
    state_path: Path = Path(DEFAULT_STATE_PATH)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Build configuration from a parsed config file.

        Args:
            data: Decoded JSON object

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If required keys are missing or have the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")

        required = ("client_id", "client_secret", "discord")
        missing = [key for key in required if key not in data]
        if missing:
            raise ConfigError(f"Missing required config keys: {', '.join(missing)}")

        for key in required + ("target_user",):
            if key in data and not isinstance(data[key], str):
                raise ConfigError(f"Config key '{key}' must be a string")

        try:
            thumbnail_timeout = float(data.get("thumbnail_timeout", DEFAULT_THUMBNAIL_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid thumbnail_timeout: {data.get('thumbnail_timeout')}") from e

        return cls(
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            discord=data["discord"],
            target_user=data.get("target_user", ""),
            content=data.get("content", DEFAULT_CONTENT),
            avatar_url=data.get("avatar_url"),
            username=data.get("username"),
            attach_thumbnails=bool(data.get("attach_thumbnails", True)),
            thumbnail_timeout=thumbnail_timeout,
        )

    @classmethod
    def from_file(cls, path: Path) -> "AppConfig":
        """Load configuration from a JSON file and apply environment overrides.

        Environment variables:
            DISCORD_WEBHOOK_URL: Overrides the ``discord`` key
            LIVE_NOTIFIER_STATE: State file path (default: state.json)

        Args:
            path: Path to the config file

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Cannot parse config file {path}: {e}") from e

        config = cls.from_dict(data)
        config.discord = os.getenv("DISCORD_WEBHOOK_URL") or config.discord
        config.state_path = Path(os.getenv("LIVE_NOTIFIER_STATE", DEFAULT_STATE_PATH))
        return config

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If configuration is invalid
        """
        if not self.client_id:
            raise ConfigError("client_id cannot be empty")

        if not self.client_secret:
            raise ConfigError("client_secret cannot be empty")

        if not self.target_user:
            raise ConfigError("target_user must be set in the config file or on the command line")

        if not self.discord.startswith(("http://", "https://")):
            raise ConfigError(f"Invalid webhook URL: {self.discord!r}")

        if self.thumbnail_timeout <= 0:
            raise ConfigError(
                f"thumbnail_timeout must be > 0, got {self.thumbnail_timeout}"
            )

    def __repr__(self) -> str:
        """String representation with masked secrets."""
        return (
            f"AppConfig("
            f"client_id='{self.client_id}', "
            f"client_secret='***', "
            f"target_user='{self.target_user}', "
            f"discord='{WEBHOOK_URL_PREFIX}***', "
            f"attach_thumbnails={self.attach_thumbnails})"
        )


def config_path_from_env() -> Path:
    """Config file path, honouring LIVE_NOTIFIER_CONFIG."""
    return Path(os.getenv("LIVE_NOTIFIER_CONFIG", DEFAULT_CONFIG_PATH))


def write_template(path: Path) -> bool:
    """Create a template config file for the user to fill in.

    Args:
        path: Where to write the template

    Returns:
        True if the file was created, False if it already existed
    """
    template = {
        "client_id": "",
        "client_secret": "",
        "target_user": "",
        "discord": WEBHOOK_URL_PREFIX,
    }
    try:
        with open(path, "x", encoding="utf-8") as f:
            json.dump(template, f, indent=2)
            f.write("\n")
    except FileExistsError:
        return False
    return True
