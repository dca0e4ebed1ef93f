"""Chart README generation with helm-docs."""
