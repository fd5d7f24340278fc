# reposcribe/token_store.py
import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "accessToken"


class TokenStore:
    """One bearer token persisted in a small JSON key-value file.

    The file plays the part of browser local storage: other keys written
    by someone else are left untouched, and an unreadable file simply
    means there is no token.
    """

    def __init__(self, path: Path, key: str = TOKEN_KEY):
        self.path = Path(path)
        self.key = key

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("token storage %s unreadable: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get(self) -> Optional[str]:
        value = self._read().get(self.key)
        return value if isinstance(value, str) else None

    def set(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if self.key in data:
            del data[self.key]
            self._write(data)
