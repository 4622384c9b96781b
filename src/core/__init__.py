"""Core: domain, normalisation, query building and traversal (no HTTP)."""
