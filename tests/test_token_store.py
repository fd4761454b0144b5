"""Tests for the persisted bearer token"""

import json

from tokay.auth.token_store import TOKEN_KEY, TokenStore


def test_read_empty_store(token_store):
    assert token_store.read() is None


def test_save_and_read(token_store):
    token_store.save("token-1")
    assert token_store.read() == "token-1"

    # Stored under the well-known key
    raw = json.loads(token_store.path.read_text(encoding="utf-8"))
    assert raw == {TOKEN_KEY: "token-1"}


def test_save_overwrites(token_store):
    token_store.save("token-1")
    token_store.save("token-2")
    assert token_store.read() == "token-2"


def test_survives_restart(tmp_path):
    TokenStore(tmp_path / "session.json").save("token-1")
    assert TokenStore(tmp_path / "session.json").read() == "token-1"


def test_clear_is_idempotent(token_store):
    token_store.save("token-1")
    token_store.clear()
    assert token_store.read() is None
    assert not token_store.path.exists()

    token_store.clear()
    assert token_store.read() is None


def test_clear_keeps_other_keys(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"tokay_token": "t", "theme": "dark"}), encoding="utf-8")
    store = TokenStore(path)

    store.clear()

    assert store.read() is None
    assert json.loads(path.read_text(encoding="utf-8")) == {"theme": "dark"}


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    store = TokenStore(path)
    assert store.read() is None

    store.save("token-1")
    assert store.read() == "token-1"
