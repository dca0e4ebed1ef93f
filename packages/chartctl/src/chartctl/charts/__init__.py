"""Chart discovery, tag formatting and pull-request maintenance."""
