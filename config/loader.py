"""Environment-driven configuration for the Claude content bridge

Values resolve in this order:
1. Process environment
2. The .env file (never overrides a variable already set)
3. The default passed by the caller, whose type also decides how the
   raw string is parsed
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "BRIDGE_ENV_FILE"

TRUTHY = ('true', '1', 'yes', 'on')


def _expand_home(value: str) -> str:
    return str(Path(value).expanduser()) if value.startswith("~/") else value


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in TRUTHY


class ConfigLoader:
    """Reads typed settings from the environment and an optional .env file"""

    def __init__(self, env_path: Optional[str] = None):
        """
        Args:
            env_path: .env file to load. Defaults to $BRIDGE_ENV_FILE, then
                     '.env' in the current directory.
        """
        self.env_path = Path(env_path or os.getenv(ENV_FILE_VAR) or ".env")
        self.env_file_loaded = False
        self._load_env_file()

    def _load_env_file(self):
        if not self.env_path.is_file():
            logger.debug(f"No .env file at {self.env_path}, reading the process environment only")
            return
        load_dotenv(dotenv_path=self.env_path, override=False)
        self.env_file_loaded = True
        logger.debug(f"Loaded settings from {self.env_path}")

    def _parser_for(self, default: Any) -> Callable[[str], Any]:
        # bool first: isinstance(True, int) holds
        if isinstance(default, bool):
            return _parse_bool
        if isinstance(default, int):
            return int
        if isinstance(default, float):
            return float
        return _expand_home

    def get(self, env_var: str, default: Any) -> Any:
        """Look up ``env_var``, falling back to ``default``

        A value that does not parse as the default's type is logged and
        replaced by the default. ``~/`` paths are expanded either way.
        """
        raw = os.getenv(env_var)
        if raw is None:
            return _expand_home(default) if isinstance(default, str) else default

        parse = self._parser_for(default)
        try:
            return parse(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_var}={raw!r}: not a valid {type(default).__name__}, using {default}")
            return default


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Process-wide loader, created on first use"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
