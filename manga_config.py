"""
Settings for the manga source layer, read from the environment (and .env)
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36'
)
DEFAULT_TIMEOUT = 30.0
DEFAULT_TRANSLATED_LANGUAGE = 'en'
DEFAULT_FEED_LIMIT = 500
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read-only once built"""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT
    proxy_url: str = ''
    language: str = DEFAULT_TRANSLATED_LANGUAGE
    feed_limit: int = DEFAULT_FEED_LIMIT
    log_level: str = 'INFO'


def _env_number(name: str, default, cast):
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from environment variables, loading a .env file first"""
    load_dotenv(env_file)

    return Settings(
        user_agent=os.getenv('QUICKREAD_USER_AGENT', '').strip() or DEFAULT_USER_AGENT,
        timeout=_env_number('QUICKREAD_TIMEOUT', DEFAULT_TIMEOUT, float),
        proxy_url=os.getenv('PROXY_URL', '').strip(),
        language=os.getenv('QUICKREAD_LANGUAGE', '').strip() or DEFAULT_TRANSLATED_LANGUAGE,
        feed_limit=_env_number('QUICKREAD_FEED_LIMIT', DEFAULT_FEED_LIMIT, int),
        log_level=os.getenv('QUICKREAD_LOG_LEVEL', 'INFO').strip().upper() or 'INFO',
    )


def configure_logging(level: str = 'INFO'):
    """Set up root logging for command-line use"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
