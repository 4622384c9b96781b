"""Core services: orchestration built on the core primitives."""
