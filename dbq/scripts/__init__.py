"""Management CLI commands."""
