"""
Durable storage for the bearer credential.

The token is the only client state persisted across restarts. It lives as a
single key in a small JSON file under the data directory.
"""

import json
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "tokay_token"


def _atomic_write(path: Path, payload: Dict) -> None:
    """Atomically write JSON to the target path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
    ) as tf:
        json.dump(payload, tf, indent=2, ensure_ascii=False)
        temp_path = Path(tf.name)
    try:
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


class TokenStore:
    """Persists, reads and clears the bearer token"""

    def __init__(self, path: Path, key: str = TOKEN_KEY):
        self.path = Path(path)
        self.key = key
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Unreadable token file, treating as empty", path=str(self.path), error=str(e))
            return {}
        return raw if isinstance(raw, dict) else {}

    def save(self, token: str) -> None:
        """Store the token, replacing any previous one"""
        with self._lock:
            data = self._load()
            data[self.key] = token
            _atomic_write(self.path, data)

    def read(self) -> Optional[str]:
        with self._lock:
            value = self._load().get(self.key)
        return value if isinstance(value, str) and value else None

    def clear(self) -> None:
        """Remove the token. Clearing an empty store is a no-op."""
        with self._lock:
            data = self._load()
            if self.key not in data:
                return
            del data[self.key]
            if data:
                _atomic_write(self.path, data)
            else:
                self.path.unlink(missing_ok=True)
