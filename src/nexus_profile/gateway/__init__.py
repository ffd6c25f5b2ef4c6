"""Identity gateway (auth service) client."""
