# src/deeplx_relay/infrastructure/kv/__init__.py
