"""GitHub Actions environment and API clients."""
