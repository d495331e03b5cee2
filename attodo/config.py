"""Configuration loader for attodo."""

import os
import logging
from pathlib import Path

logger = logging.getLogger("attodo")

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = os.path.join(BASE_DIR, "config", "settings.env")


def get_env_or_default(key, default):
    return os.environ.get(key, default)


def _unquote(value):
    """Strip one pair of matching quotes, as written in shell-style env files."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def load_env_file(filepath):
    """
    Load attodo settings from a shell-style env file into os.environ

    Accepts ``KEY=value``, ``export KEY=value`` and quoted values such as
    ``ATTODO_TIMEZONE="America/New_York"``. Lines without ``=`` are skipped.

    Args:
        filepath: Path to the env file

    Returns:
        True if the file was read, False otherwise
    """
    loaded = []
    try:
        with open(filepath, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if line.startswith('export '):
                    line = line[len('export '):].lstrip()
                if '=' not in line:
                    logger.debug(f"Skipping malformed line in {filepath}: {line!r}")
                    continue
                key, value = line.split('=', 1)
                key = key.strip()
                os.environ[key] = _unquote(value.strip())
                loaded.append(key)
    except OSError as e:
        logger.error(f"Error loading attodo config {filepath}: {e}")
        return False

    logger.debug(f"Loaded {len(loaded)} settings from {filepath}")
    return True


def load_config():
    """Load configuration from ATTODO_CONFIG or config/settings.env."""
    config_file = get_env_or_default("ATTODO_CONFIG", DEFAULT_CONFIG)

    if os.path.exists(config_file):
        return load_env_file(config_file)

    logger.debug(f"Config file not found: {config_file}")
    logger.debug("Using default settings or environment variables.")
    return False


# Load configuration when module is imported
load_config()
