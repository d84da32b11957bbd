# src/deeplx_relay/di/__init__.py
from .container import AppContainer

__all__ = ["AppContainer"]
