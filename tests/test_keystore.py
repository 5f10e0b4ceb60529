import json

from keystore import OPENAI_KEY_NAME, YOUTUBE_KEY_NAME, KeyStore, obfuscate_key, reveal_key


def test_obfuscation_is_reversible():
    cipher = obfuscate_key("AIzaSyExample-123")

    assert cipher != "AIzaSyExample-123"
    assert reveal_key(cipher) == "AIzaSyExample-123"


def test_reveal_garbage_returns_empty():
    assert reveal_key("%%% not base64 %%%") == ""


def test_save_and_load(tmp_path):
    store = KeyStore(tmp_path / "keys.json")
    store.save(youtube_api_key="yt-key", openai_api_key="sk-key")

    raw = json.loads(store.path.read_text())
    assert set(raw) == {YOUTUBE_KEY_NAME, OPENAI_KEY_NAME}
    assert "yt-key" not in store.path.read_text()

    creds = store.load()
    assert creds.youtube_api_key == "yt-key"
    assert creds.openai_api_key == "sk-key"


def test_partial_save_keeps_other_key(tmp_path):
    store = KeyStore(tmp_path / "keys.json")
    store.save(youtube_api_key="yt-key", openai_api_key="sk-key")
    store.save(openai_api_key="sk-new")

    creds = store.load()
    assert creds.youtube_api_key == "yt-key"
    assert creds.openai_api_key == "sk-new"


def test_missing_or_corrupt_store(tmp_path):
    path = tmp_path / "keys.json"
    assert KeyStore(path).load().has_youtube() is False

    path.write_text("{not json")
    assert KeyStore(path).load().has_openai() is False


def test_clear(tmp_path):
    store = KeyStore(tmp_path / "keys.json")
    store.save(youtube_api_key="yt-key")
    store.clear()

    assert not store.path.exists()
