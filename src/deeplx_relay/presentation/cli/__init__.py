# src/deeplx_relay/presentation/cli/__init__.py
