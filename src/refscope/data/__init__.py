"""Bundled rule and user-agent definitions."""
