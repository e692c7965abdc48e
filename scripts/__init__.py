"""Command-line tools for fee proposals."""
