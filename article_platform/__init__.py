"""Credential storage and article metadata for the reading-level platform."""
