"""Session state persistence between runs.

The state file holds the last issued credential and the last live-set that
was announced. It is read once at start-up and rewritten at the points
where the run changes it. Losing the file only risks one duplicate
notification, so neither a corrupt file nor a failed write stops the run.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from live_notifier.models import LiveSet, SessionState

logger = logging.getLogger(__name__)


class SessionStore:
    """Loads and saves ``SessionState`` as a JSON file."""

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Location of the state file
        """
        self.path = Path(path)

    def load(self) -> Optional[SessionState]:
        """
        Read the state file.

        Returns:
            The stored state, or None if the file is missing or unparsable
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug(f"No state file at {self.path}")
            return None
        except OSError as e:
            logger.warning(f"Could not read state file {self.path}: {e}")
            return None

        try:
            return SessionState.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring corrupt state file {self.path}: {e}")
            return None

    def save(self, state: SessionState) -> bool:
        """
        Overwrite the state file atomically.

        The state is written to a temporary file next to the target and
        renamed over it, so readers never see a partial file.

        Args:
            state: State to persist

        Returns:
            True if the file was written
        """
        directory = self.path.parent
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
                f.write("\n")
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug(f"State written to {self.path}")
            return True
        except OSError as e:
            logger.error(f"Failed to write state file {self.path}: {e}")
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


def diff_new(old_state: Optional[SessionState], fresh: LiveSet) -> LiveSet:
    """
    Broadcasts in ``fresh`` that were not part of the last notified live-set.

    Args:
        old_state: State from the previous run, if any
        fresh: Live-set fetched in this run

    Returns:
        New LiveSet with previously seen broadcast ids removed, in fetch order
    """
    if old_state is None or old_state.lives is None:
        return LiveSet(data=list(fresh.data))

    seen = old_state.lives.ids()
    return LiveSet(data=[broadcast for broadcast in fresh.data if broadcast.id not in seen])
