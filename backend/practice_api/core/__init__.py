"""Cross-cutting concerns: configuration, auth, errors, logging."""
