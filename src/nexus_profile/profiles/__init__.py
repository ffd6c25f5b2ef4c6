"""Profiles, owned sub-entities and the enriched profile view."""
