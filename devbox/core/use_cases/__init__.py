"""Use cases — top-level flows called by the CLI."""
