# src/deeplx_relay/infrastructure/upstream/__init__.py
