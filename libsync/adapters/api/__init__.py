"""Outils communs aux appels réseau (politique de retry)."""

from libsync.adapters.api.retry import RetryPolicy, with_retry

__all__ = ["RetryPolicy", "with_retry"]
