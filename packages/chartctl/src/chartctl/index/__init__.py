"""Helm repository index documents and the release entry merger."""
