"""Command-line interface for ndots_webhook."""
