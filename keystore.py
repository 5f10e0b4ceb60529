import base64
import binascii
import json
import logging
from pathlib import Path

from config import Credentials

logger = logging.getLogger(__name__)

YOUTUBE_KEY_NAME = "youtube_api_key"
OPENAI_KEY_NAME = "openai_api_key"

_XOR_MASK = 123


def obfuscate_key(key: str) -> str:
    """Reversible scrambling so keys are not stored as plain text. Not encryption."""
    masked = "".join(chr(ord(ch) ^ _XOR_MASK) for ch in key)
    return base64.b64encode(masked.encode("utf-8")).decode("ascii")


def reveal_key(cipher: str) -> str:
    try:
        masked = base64.b64decode(cipher.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return ""
    return "".join(chr(ord(ch) ^ _XOR_MASK) for ch in masked)


class KeyStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable key store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Credentials:
        data = self._read()
        return Credentials(
            youtube_api_key=reveal_key(data.get(YOUTUBE_KEY_NAME, "")),
            openai_api_key=reveal_key(data.get(OPENAI_KEY_NAME, "")),
        )

    def save(self, youtube_api_key: str | None = None, openai_api_key: str | None = None) -> None:
        """Store whichever keys are given, leaving the other one untouched."""
        data = self._read()
        if youtube_api_key is not None:
            data[YOUTUBE_KEY_NAME] = obfuscate_key(youtube_api_key)
        if openai_api_key is not None:
            data[OPENAI_KEY_NAME] = obfuscate_key(openai_api_key)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
