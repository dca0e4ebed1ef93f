"""Chart packaging, GitHub releases, repository indexes and OCI publishing."""
