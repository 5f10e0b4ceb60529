import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

from errors import MissingCredentialError

load_dotenv()

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
YOUTUBE_API_KEY: str = os.getenv("YOUTUBE_API_KEY", "")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
KEYSTORE_PATH: Path = Path(os.getenv("TUBESTRATEGY_KEYSTORE", Path.home() / ".tubestrategy" / "keys.json"))
EXPORT_DIR: Path = Path(os.getenv("TUBESTRATEGY_EXPORT_DIR", "exports"))


class Credentials(BaseModel):
    youtube_api_key: str = ""
    openai_api_key: str = ""

    def has_youtube(self) -> bool:
        return bool(self.youtube_api_key)

    def has_openai(self) -> bool:
        return bool(self.openai_api_key)

    def require_youtube(self) -> str:
        if not self.youtube_api_key:
            raise MissingCredentialError("YouTube")
        return self.youtube_api_key

    def require_openai(self) -> str:
        if not self.openai_api_key:
            raise MissingCredentialError("OpenAI")
        return self.openai_api_key


def load_credentials(store=None) -> Credentials:
    """Environment values win; anything missing is read from the key store."""
    from keystore import KeyStore

    store = store or KeyStore(KEYSTORE_PATH)
    saved = store.load()
    return Credentials(
        youtube_api_key=YOUTUBE_API_KEY or saved.youtube_api_key,
        openai_api_key=OPENAI_API_KEY or saved.openai_api_key,
    )
