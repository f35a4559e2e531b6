"""Command-line interface for RelayKit."""
