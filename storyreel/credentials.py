"""Round-robin credential rotation shared by every generation call."""
import os
from typing import Iterable, List, Optional

CREDENTIAL_PREFIX = "AIzaSy"
MIN_CREDENTIAL_LENGTH = 20


class CredentialPool:
    """Ordered credentials plus one cursor consumed by all call kinds.

    ``next()`` returns None when the pool is empty; callers then fall back
    to the configured default credential.
    """

    def __init__(self, credentials: Optional[Iterable[str]] = None) -> None:
        self._credentials: List[str] = list(credentials or [])
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    def next(self) -> Optional[str]:
        if not self._credentials:
            return None
        credential = self._credentials[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._credentials)
        return credential

    def replace(self, credentials: Iterable[str]) -> None:
        self._credentials = list(credentials)
        self._cursor = 0

    def clear(self) -> None:
        self.replace([])


def parse_credentials(text: str) -> List[str]:
    keys = [line.strip() for line in text.splitlines()]
    return [k for k in keys if len(k) > MIN_CREDENTIAL_LENGTH and k.startswith(CREDENTIAL_PREFIX)]


def load_credentials(path: str) -> List[str]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"credential file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return parse_credentials(f.read())
