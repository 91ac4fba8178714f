"""Codex credential loading from the CLI's ``auth.json``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from codex_ping.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodexCredentials:
    """Bearer token plus the optional ChatGPT account it belongs to."""

    access_token: str
    account_id: str | None = None


class CredentialProvider(Protocol):
    """Anything that can hand out fresh credentials on demand."""

    def load(self) -> CodexCredentials | None:
        ...


def default_auth_path(codex_home: str | None = None) -> Path:
    """Resolve ``auth.json`` under ``CODEX_HOME`` or ``~/.codex``."""
    home = codex_home if codex_home is not None else settings.codex_home
    base = Path(home).expanduser() if home else Path.home() / ".codex"
    return base / "auth.json"


class FileCredentialProvider:
    """Reads credentials from disk on every call.

    The file is re-read each time because ``codex login`` may rewrite it
    while we are running. Any problem reading it means "no credentials".
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or default_auth_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CodexCredentials | None:
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError):
            logger.debug("Could not read %s", self._path, exc_info=True)
            return None

        tokens = data.get("tokens") if isinstance(data, dict) else None
        if not isinstance(tokens, dict):
            return None
        access_token = tokens.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return None

        account_id = tokens.get("account_id")
        return CodexCredentials(
            access_token=access_token,
            account_id=account_id if isinstance(account_id, str) and account_id else None,
        )
