"""Command-line interface for Reprise."""
