"""Accès aux intégrations configurées."""

from libsync.adapters.integrations.json_registry import JsonIntegrationRegistry

__all__ = ["JsonIntegrationRegistry"]
