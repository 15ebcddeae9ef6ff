"""Tests for session state persistence and the live-set diff."""

import json
from unittest.mock import patch

from live_notifier.models import LiveSet, SessionState
from live_notifier.state import SessionStore, diff_new


class TestSessionStore:
    """Test SessionStore class."""

    def test_load_missing_file(self, tmp_path):
        """Test that a missing state file means no prior state."""
        store = SessionStore(tmp_path / "state.json")
        assert store.load() is None

    def test_load_corrupt_file(self, tmp_path):
        """Test that an unparsable state file is treated as absent."""
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        assert SessionStore(path).load() is None

    def test_load_invalid_utf8(self, tmp_path):
        """Test that a state file that is not valid UTF-8 is treated as absent."""
        path = tmp_path / "state.json"
        path.write_bytes(b'\xff\xfe{"auth": null}')

        assert SessionStore(path).load() is None

    def test_load_wrong_shape(self, tmp_path):
        """Test that a state file with the wrong structure is treated as absent."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"auth": {"access_token": 1}}), encoding="utf-8")

        assert SessionStore(path).load() is None

    def test_save_and_load(self, tmp_path, state_with_a):
        """Test that a saved state is read back unchanged."""
        store = SessionStore(tmp_path / "state.json")

        assert store.save(state_with_a) is True
        loaded = store.load()

        assert loaded == state_with_a
        assert loaded.lives.ids() == {"A"}

    def test_saved_file_format(self, tmp_path, state_with_a):
        """Test the on-disk JSON layout."""
        path = tmp_path / "state.json"
        SessionStore(path).save(state_with_a)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["auth"]["access_token"] == "stored-token"
        assert data["lives"]["data"][0]["id"] == "A"

    def test_save_empty_state(self, tmp_path):
        """Test saving a state without credential or live-set."""
        path = tmp_path / "state.json"
        SessionStore(path).save(SessionState())

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"auth": None, "lives": None}

    def test_save_overwrites(self, tmp_path, state_with_a):
        """Test that saving replaces the previous content."""
        store = SessionStore(tmp_path / "state.json")
        store.save(state_with_a)
        store.save(SessionState())

        assert store.load() == SessionState()

    def test_save_leaves_no_temp_files(self, tmp_path, state_with_a):
        """Test that the atomic write cleans up after itself."""
        store = SessionStore(tmp_path / "state.json")
        store.save(state_with_a)

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_save_failure_is_not_fatal(self, tmp_path, state_with_a):
        """Test that a write failure is reported, not raised."""
        store = SessionStore(tmp_path / "missing-dir" / "state.json")

        assert store.save(state_with_a) is False

    def test_save_failure_keeps_previous_file(self, tmp_path, state_with_a):
        """Test that a failed replace leaves the old file intact."""
        store = SessionStore(tmp_path / "state.json")
        store.save(state_with_a)

        with patch("live_notifier.state.os.replace", side_effect=OSError("disk full")):
            assert store.save(SessionState()) is False

        assert store.load() == state_with_a
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestDiffNew:
    """Test diff_new function."""

    def test_no_prior_state(self, live_set_ab):
        """Test that without prior state everything is new."""
        result = diff_new(None, live_set_ab)

        assert [b.id for b in result.data] == ["A", "B"]

    def test_prior_state_without_lives(self, credential, live_set_ab):
        """Test that a state with only a credential filters nothing."""
        result = diff_new(SessionState(auth=credential), live_set_ab)

        assert result.ids() == {"A", "B"}

    def test_removes_seen_broadcasts(self, state_with_a, live_set_ab):
        """Test that broadcasts from the last live-set are removed."""
        result = diff_new(state_with_a, live_set_ab)

        assert [b.id for b in result.data] == ["B"]

    def test_never_includes_seen_ids(self, broadcast_factory):
        """Test that no id from the previous live-set survives the diff."""
        old = SessionState(lives=LiveSet(data=[broadcast_factory(i) for i in ("1", "3", "5")]))
        fresh = LiveSet(data=[broadcast_factory(str(i)) for i in range(1, 7)])

        result = diff_new(old, fresh)

        assert [b.id for b in result.data] == ["2", "4", "6"]
        assert not result.ids() & old.lives.ids()

    def test_all_seen(self, state_with_a, broadcast_factory):
        """Test that an unchanged live-set yields nothing new."""
        result = diff_new(state_with_a, LiveSet(data=[broadcast_factory("A")]))

        assert result.data == []

    def test_empty_fetch(self, state_with_a):
        """Test diffing an empty fetch."""
        assert diff_new(state_with_a, LiveSet()).data == []

    def test_new_session_same_user(self, state_with_a, broadcast_factory):
        """Test that a new broadcast id for the same user counts as new."""
        fresh = LiveSet(data=[broadcast_factory("A2")])

        result = diff_new(state_with_a, fresh)

        assert result.ids() == {"A2"}

    def test_inputs_not_mutated(self, state_with_a, live_set_ab):
        """Test that diff_new does not modify its arguments."""
        diff_new(state_with_a, live_set_ab)
        diff_new(None, live_set_ab).data.clear()

        assert live_set_ab.ids() == {"A", "B"}
        assert state_with_a.lives.ids() == {"A"}
