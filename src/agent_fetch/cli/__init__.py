"""Command-line interface for agent-fetch."""
