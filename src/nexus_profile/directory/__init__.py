"""User directory and college listing backed by the identity gateway."""
