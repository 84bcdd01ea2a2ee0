"""HTTP surface of the paymaster relay."""

from .main import create_app

__all__ = ["create_app"]
