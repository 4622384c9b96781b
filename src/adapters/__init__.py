"""Adapters: concrete I/O (httpx) behind the core's contracts."""
