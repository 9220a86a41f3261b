"""Small helpers shared by the CLI and configuration."""

from .env_loader import load_dotenv

__all__ = ["load_dotenv"]
