"""
Configuration entry point for the agent orchestrator.

Loads a ``.env`` file into the environment, then reads the unified YAML
configuration (see ``config_loader``).
"""

from dotenv import load_dotenv

from .config_loader import load_app_config
from .models import AppConfig

load_dotenv()


def get_config() -> AppConfig:
    """Get the application configuration."""
    return load_app_config()


# Global config instance
config = get_config()
