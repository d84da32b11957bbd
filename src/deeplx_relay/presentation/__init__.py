# src/deeplx_relay/presentation/__init__.py
