"""Command-line interface for the Codeloft editor backend."""

from .cli import main
from .client import ApiClient
from .config import PushConfig, load_config

__all__ = ["PushConfig", "load_config", "ApiClient", "main"]
