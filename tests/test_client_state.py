"""Tests for persisted client state."""

from occupancy_monitor.client_state import ClientStateStore


class TestClientStateStore:
    """Test ClientStateStore operations."""

    def test_unset_keys_are_none(self, state_store):
        assert state_store.get_token() is None
        assert state_store.get_site_id() is None
        assert state_store.get_user_email() is None

    def test_set_and_get(self, state_store):
        state_store.set_token("tok-1")
        state_store.set_site_id("site-1")
        state_store.set_user_email("ops@example.com")

        assert state_store.get_token() == "tok-1"
        assert state_store.get_site_id() == "site-1"
        assert state_store.get_user_email() == "ops@example.com"

    def test_overwrite(self, state_store):
        state_store.set_site_id("site-1")
        state_store.set_site_id("site-2")
        assert state_store.get_site_id() == "site-2"

    def test_keys_cleared_independently(self, state_store):
        state_store.set_token("tok-1")
        state_store.set_site_id("site-1")

        assert state_store.remove("site_id") is True
        assert state_store.remove("site_id") is False
        assert state_store.get_site_id() is None
        assert state_store.get_token() == "tok-1"

    def test_clear_removes_all_session_keys(self, state_store):
        state_store.set_token("tok-1")
        state_store.set_site_id("site-1")
        state_store.set_user_email("ops@example.com")

        state_store.clear()

        assert state_store.get_token() is None
        assert state_store.get_site_id() is None
        assert state_store.get_user_email() is None

    def test_persists_across_instances(self, tmp_path):
        db_path = str(tmp_path / "nested" / "state.db")
        ClientStateStore(db_path).set_token("tok-1")
        assert ClientStateStore(db_path).get_token() == "tok-1"
