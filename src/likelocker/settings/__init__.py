from .env import ConfigError, load_settings, read_environment
from .models import PAGE_SIZE, Credentials, Settings

__all__ = [
    "ConfigError",
    "load_settings",
    "read_environment",
    "PAGE_SIZE",
    "Credentials",
    "Settings",
]
