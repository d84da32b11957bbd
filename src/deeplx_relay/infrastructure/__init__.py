# src/deeplx_relay/infrastructure/__init__.py
