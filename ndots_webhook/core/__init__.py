"""
Core building blocks shared by the admission path, the transport and the CLI.

This package contains the data model, configuration loading and the
exception types used throughout ndots_webhook.
"""

__all__ = []
