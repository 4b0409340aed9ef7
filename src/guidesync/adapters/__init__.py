"""Adapters: HTTP, cache storage and the two document dialects."""
