"""OAuth session state machine for the authorization-code + PKCE flow

One ``OAuthSessionManager`` owns at most one pending session. Its state
moves ``IDLE -> AWAITING_CODE -> COMPLETING`` and back to ``IDLE`` on
success, cancellation, or a hard failure. A failed completion that can be
retried returns to ``AWAITING_CODE`` with the session intact.

The UI and the CLI may call ``start_flow``/``complete_flow``/``cancel_flow``
concurrently on the same instance. Every check-and-set of the state below
happens without an ``await`` in between, which is what makes the guards
hold under asyncio.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from errors import (
    CompletionAlreadyInProgressError,
    InvalidCodeError,
    NoActiveSessionError,
    StorageError,
    TokenExchangeFailedError,
)
from settings import AUTH_PROVIDER, OAUTH_LOCK_WAIT_SECONDS
from utils.credentials import ApiKeyCredential, OAuthCredential, now_millis
from utils.storage import CredentialStore
from .authorization import build_authorize_url, open_in_browser
from .code_input import parse_authorization_input
from .pkce import generate_pkce, generate_state
from .token_exchange import exchange_code
from .token_manager import get_valid_token

logger = logging.getLogger(__name__)

FLOW_STARTED_INSTRUCTIONS = """
OAuth authentication started!

Steps to complete:
1. Authorize the application in your browser
2. Copy the authorization code from the callback page
3. Paste the code when prompted

You can paste either just the code or the full callback URL.
"""

FLOW_IN_PROGRESS_INSTRUCTIONS = """
OAuth authentication in progress!

Steps to complete:
1. Complete authorization in your browser (if not done)
2. Copy the authorization code from the callback page
3. Paste the code when prompted

You can paste either just the code or the full callback URL.
"""

ALREADY_AUTHENTICATED_MESSAGE = "Already authenticated with Anthropic Claude"


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_CODE = "awaiting_code"
    COMPLETING = "completing"


@dataclass
class OAuthSession:
    """Pending authorization, kept in memory only"""
    verifier: str
    challenge: str
    state: str
    url: str
    created_at: float = field(default_factory=time.time)


@dataclass
class FlowStart:
    """Result of start_flow

    ``url`` is None when a valid credential already exists.
    """
    url: Optional[str]
    instructions: str
    already_authenticated: bool = False


class OAuthSessionManager:
    """Drives OAuth credential acquisition and renewal for one provider"""

    def __init__(
        self,
        storage: Optional[CredentialStore] = None,
        provider: str = AUTH_PROVIDER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        browser_opener: Callable[[str], bool] = open_in_browser,
        lock_wait_seconds: float = OAUTH_LOCK_WAIT_SECONDS,
    ):
        self.storage = storage or CredentialStore()
        self.provider = provider
        self.transport = transport
        self.browser_opener = browser_opener
        self.lock_wait_seconds = lock_wait_seconds

        self._session: Optional[OAuthSession] = None
        self._state = FlowState.IDLE
        self._start_locked = False

    # Guards

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def session(self) -> Optional[OAuthSession]:
        return self._session

    @property
    def flow_in_progress(self) -> bool:
        return self._state is not FlowState.IDLE

    @property
    def completion_in_progress(self) -> bool:
        return self._state is FlowState.COMPLETING

    @property
    def start_locked(self) -> bool:
        return self._start_locked

    def _reset(self):
        self._session = None
        self._state = FlowState.IDLE
        self._start_locked = False

    # Credentials

    async def get_access_token(self) -> Optional[str]:
        """Current access token, refreshed if needed; None if unavailable"""
        return await get_valid_token(self.storage, self.provider, transport=self.transport)

    async def has_valid_credential(self) -> bool:
        return await self.get_access_token() is not None

    # Flow

    def _in_progress_result(self, session: OAuthSession) -> FlowStart:
        logger.info("OAuth authentication already in progress, returning existing session")
        return FlowStart(url=session.url, instructions=FLOW_IN_PROGRESS_INSTRUCTIONS)

    async def start_flow(self) -> FlowStart:
        """Begin an OAuth flow, or join the one already pending

        Returns:
            FlowStart with the authorization URL, or with
            ``already_authenticated`` set when a valid credential exists
        """
        logger.debug(
            f"start_flow: state={self._state.value} start_locked={self._start_locked} "
            f"has_session={self._session is not None}"
        )

        if self._start_locked:
            logger.debug("Start lock is held, waiting for the current start to finish")
            await asyncio.sleep(self.lock_wait_seconds)
            if self._session is not None:
                return self._in_progress_result(self._session)

        self._start_locked = True
        try:
            if await self.has_valid_credential():
                logger.info("Already authenticated, skipping OAuth flow")
                return FlowStart(url=None, instructions=ALREADY_AUTHENTICATED_MESSAGE, already_authenticated=True)

            if self._session is not None:
                return self._in_progress_result(self._session)

            pkce = generate_pkce()
            state = generate_state()
            url = build_authorize_url(pkce.code_challenge, state)
            self._session = OAuthSession(
                verifier=pkce.code_verifier,
                challenge=pkce.code_challenge,
                state=state,
                url=url,
            )
            self._state = FlowState.AWAITING_CODE
            logger.info("Started new OAuth session")

            logger.info("Opening browser for Anthropic OAuth authentication...")
            try:
                opened = self.browser_opener(url)
            except Exception as e:
                logger.warning(f"Failed to open browser: {e}")
                opened = False
            if not opened:
                logger.warning(f"Please open this URL manually: {url}")

            return FlowStart(url=url, instructions=FLOW_STARTED_INSTRUCTIONS)
        finally:
            self._start_locked = False

    async def complete_flow(self, raw_code_input: str) -> OAuthCredential:
        """Exchange a pasted authorization code and store the tokens

        Raises:
            NoActiveSessionError: If no flow was started, or it was cancelled
                while the code was being exchanged
            CompletionAlreadyInProgressError: If another completion is running
            InvalidCodeError: If the input holds no plausible code
            TokenExchangeFailedError: If the token endpoint rejected the code
            StorageError: If the new credential could not be stored
        """
        session = self._session
        if session is None:
            raise NoActiveSessionError()

        if self._state is FlowState.COMPLETING:
            raise CompletionAlreadyInProgressError()

        self._state = FlowState.COMPLETING
        logger.info("Completing OAuth authentication with authorization code...")

        exchanged = False
        try:
            parsed = parse_authorization_input(raw_code_input)
            if parsed.state and parsed.state != session.state:
                logger.warning("State returned with the code does not match this session")
            state = parsed.state or session.state

            credential = await exchange_code(
                parsed.code,
                state,
                session.verifier,
                transport=self.transport,
            )
            exchanged = True
        except (InvalidCodeError, TokenExchangeFailedError) as e:
            logger.error(f"Failed to complete OAuth authentication: {e}")
            raise
        finally:
            # Keep the session for a retry unless cancel_flow replaced it meanwhile
            if not exchanged and self._session is session:
                self._state = FlowState.AWAITING_CODE

        if self._session is not session:
            # cancel_flow ran during the exchange; a newer session may exist now
            logger.warning("OAuth session was cancelled during code exchange, discarding the tokens")
            raise NoActiveSessionError()

        try:
            self.storage.set(self.provider, credential)
        except StorageError:
            logger.error("Authorization succeeded but the credential could not be stored")
            self._reset()
            raise

        self._reset()
        logger.info("Anthropic OAuth authentication completed successfully")
        return credential

    def cancel_flow(self):
        """Discard any pending session and reset all guards"""
        if self._session is not None or self._state is not FlowState.IDLE:
            logger.info("Clearing OAuth session...")
        self._reset()

    def logout(self):
        """Cancel any pending flow and forget the stored credential"""
        self.cancel_flow()
        self.storage.remove(self.provider)
        logger.info(f"Removed stored credentials for {self.provider}")

    def get_status(self) -> Dict[str, Any]:
        """Describe the stored credential without exposing secrets"""
        credential = self.storage.get(self.provider)
        if credential is None:
            return {
                "has_credential": False,
                "type": None,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No credentials",
                "flow_state": self._state.value,
            }

        if isinstance(credential, ApiKeyCredential):
            return {
                "has_credential": True,
                "type": "api",
                "is_expired": False,
                "expires_at": None,
                "time_until_expiry": "Does not expire",
                "flow_state": self._state.value,
            }

        remaining_ms = credential.expires - now_millis()
        expires_str = datetime.fromtimestamp(credential.expires / 1000).isoformat()

        seconds = abs(remaining_ms) // 1000
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        time_str = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
        if remaining_ms <= 0:
            time_str = f"{time_str} ago"

        return {
            "has_credential": True,
            "type": "oauth",
            "is_expired": remaining_ms <= 0,
            "expires_at": expires_str,
            "time_until_expiry": time_str,
            "flow_state": self._state.value,
        }
