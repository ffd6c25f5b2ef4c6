"""Nexus profile service."""
