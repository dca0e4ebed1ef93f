"""Repository label sync and workflow issue reports."""
