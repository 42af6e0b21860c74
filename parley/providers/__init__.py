"""External capability providers (model gateway)."""
