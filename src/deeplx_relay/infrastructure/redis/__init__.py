# src/deeplx_relay/infrastructure/redis/__init__.py
