"""Normalization of pasted authorization codes

The callback page shows the code as ``CODE#STATE``. Users may paste that,
the bare code, or the whole callback URL, and terminals may wrap the paste
in bracketed-paste markers or leave ANSI escape sequences behind.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple
from urllib.parse import parse_qs, urlparse

from errors import InvalidCodeError
from settings import MIN_CODE_LENGTH

logger = logging.getLogger(__name__)

ESC = "\x1b"

BRACKETED_PASTE_START = re.compile(r"^(?:\x1b)?\[200~")

# (name, pattern) pairs removed in order from the stripped input
PASTE_ARTIFACTS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("bracketed_paste_start", BRACKETED_PASTE_START),
    ("bracketed_paste_end", re.compile(r"(?:\x1b)?\[201~$")),
    ("ansi_escape", re.compile(r"\x1b\[[0-9;]*[A-Za-z]")),
)

# Some terminals turn the closing paste marker into a lone trailing "_".
# Other login flows strip it from every input; here it is only
# stripped when a bracketed paste was detected, since "_" is a valid
# base64url character and may end a real code.
TRAILING_PASTE_REMNANT = re.compile(r"_$")


@dataclass
class AuthorizationInput:
    """Authorization code and the state that came with it, if any"""
    code: str
    state: Optional[str] = None


def strip_paste_artifacts(raw: str) -> str:
    """Remove known terminal paste artifacts from user input

    Args:
        raw: Text exactly as pasted

    Returns:
        Cleaned text with surrounding whitespace removed
    """
    text = raw.strip()
    bracketed = bool(BRACKETED_PASTE_START.search(text))

    for name, pattern in PASTE_ARTIFACTS:
        cleaned = pattern.sub("", text)
        if cleaned != text:
            logger.debug(f"Removed paste artifact: {name}")
            text = cleaned

    text = text.strip()
    if bracketed:
        text = TRAILING_PASTE_REMNANT.sub("", text)
    return text


def parse_authorization_input(raw: str, min_length: int = MIN_CODE_LENGTH) -> AuthorizationInput:
    """Extract the authorization code and state from pasted text

    Accepts a bare code, ``code#state``, or a full callback URL with
    ``?code=...&state=...``.

    Raises:
        InvalidCodeError: If no plausible code remains after cleanup
    """
    text = strip_paste_artifacts(raw or "")
    state: Optional[str] = None

    if "?code=" in text or "&code=" in text:
        parsed = urlparse(text)
        if not parsed.scheme or not parsed.netloc:
            raise InvalidCodeError("Invalid callback URL format")
        query = parse_qs(parsed.query)
        code = (query.get("code") or [""])[0]
        state = (query.get("state") or [None])[0]
        # The callback page may append the state as a fragment instead
        if not state and parsed.fragment:
            state = parsed.fragment
    elif "#" in text:
        code, _, fragment = text.partition("#")
        state = fragment or None
    else:
        code = text

    code = code.strip()
    if not code:
        raise InvalidCodeError("No authorization code found in input")

    if len(code) < min_length:
        raise InvalidCodeError(
            f"Authorization code seems too short ({len(code)} characters). Please check your input."
        )

    if "[" in code or ESC in code:
        logger.warning("Authorization code may still contain escape sequences")

    logger.debug(f"Parsed authorization code ({len(code)} chars), state {'present' if state else 'absent'}")
    return AuthorizationInput(code=code, state=state)
