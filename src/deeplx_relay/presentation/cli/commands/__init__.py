# src/deeplx_relay/presentation/cli/commands/__init__.py
