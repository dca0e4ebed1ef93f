"""Repository git setup commands."""
