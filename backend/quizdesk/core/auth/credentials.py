"""
Credential table: user id -> bcrypt hash of the user's password.

Built once at startup from the CREDENTIALS setting and, optionally, a
spreadsheet (CREDENTIALS_FILE, sheet "Users" or "Sheet1", columns user id and
hash, header row skipped). Plaintext passwords are never stored.
"""
import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

import pandas as pd

from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import LoadError
from quizdesk.core.auth.security import verify_password

logger = logging.getLogger(__name__)

CREDENTIAL_SHEET_NAMES = ("Users", "Sheet1")


def load_credentials_file(path: str | Path) -> Dict[str, str]:
    """
    Read user id / hash pairs from a spreadsheet.

    Raises:
        LoadError: If the file or sheet is missing or unreadable
    """
    path = Path(path)
    if not path.is_file():
        logger.error(f"Credentials file not found: {path}")
        raise LoadError(ErrorMessages.CREDENTIALS_UNREADABLE)

    try:
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            sheet_name = next(
                (n for n in CREDENTIAL_SHEET_NAMES if n in workbook.sheet_names), None
            )
            if sheet_name is None:
                logger.error(f"Sheet 'Users' or 'Sheet1' not found in {path}")
                raise LoadError(ErrorMessages.CREDENTIALS_UNREADABLE)
            frame = workbook.parse(sheet_name, header=None, dtype=str)
    except LoadError:
        raise
    except Exception as e:
        logger.error(f"Failed to read credentials file {path}: {e}")
        raise LoadError(ErrorMessages.CREDENTIALS_UNREADABLE, original_error=e)

    entries: Dict[str, str] = {}
    for row in frame.values.tolist()[1:]:
        if len(row) < 2 or pd.isna(row[0]) or pd.isna(row[1]):
            continue
        user_id, hashed = str(row[0]).strip(), str(row[1]).strip()
        if user_id and hashed:
            entries[user_id] = hashed
    return entries


class CredentialTable:
    """Immutable mapping of user id to password hash."""

    def __init__(self, entries: Mapping[str, str]):
        self._entries: Dict[str, str] = dict(entries)

    @classmethod
    def from_settings(cls) -> "CredentialTable":
        """Build the table from CREDENTIALS plus CREDENTIALS_FILE, if set."""
        entries = dict(settings.CREDENTIALS)
        if settings.CREDENTIALS_FILE:
            entries.update(load_credentials_file(settings.CREDENTIALS_FILE))
        if not entries:
            logger.warning("Credential table is empty; nobody can log in")
        else:
            logger.info(f"Loaded {len(entries)} credential entries")
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def authenticate(self, password: str) -> Optional[str]:
        """
        Find the user whose hash matches `password`.

        Entries are checked in table order; the first match wins.

        Returns:
            The matching user id, or None
        """
        for user_id, hashed in self._entries.items():
            if verify_password(password, hashed):
                return user_id
        return None
