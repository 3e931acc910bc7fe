"""Tests for CredentialStore."""

import json

from quote_relay.market.credentials import CredentialStore
from quote_relay.market.models import Credentials


class TestCredentialStore:
    """Unit tests for the persisted credential store."""

    def test_load_missing_file(self, tmp_path):
        store = CredentialStore(tmp_path / "session.json")
        assert store.load() == Credentials()
        assert not store.present

    def test_update_persists(self, tmp_path):
        """Test that updating writes the session file shape."""
        path = tmp_path / "session.json"
        store = CredentialStore(path)
        store.update(Credentials("cst", "xst"))
        assert json.loads(path.read_text()) == {"cst": "cst", "securityToken": "xst"}

    def test_reload_across_instances(self, tmp_path):
        path = tmp_path / "session.json"
        CredentialStore(path).update(Credentials("cst", "xst"))
        store = CredentialStore(path)
        assert store.load() == Credentials("cst", "xst")
        assert store.present

    def test_malformed_file_ignored(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json")
        store = CredentialStore(path)
        assert store.load() == Credentials()

    def test_partial_file_forces_login(self, tmp_path):
        """A file holding only one token is treated as no tokens at all."""
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"cst": "cst", "securityToken": None}))
        store = CredentialStore(path)
        store.load()
        assert not store.present

    def test_unwritable_path_keeps_memory_copy(self, tmp_path):
        """Persistence failures are logged; the in-memory tokens still update."""
        store = CredentialStore(tmp_path / "missing-dir" / "session.json")
        store.update(Credentials("cst", "xst"))
        assert store.current == Credentials("cst", "xst")

    def test_clear(self, tmp_path):
        store = CredentialStore(tmp_path / "session.json")
        store.update(Credentials("cst", "xst"))
        store.clear()
        assert not store.present
