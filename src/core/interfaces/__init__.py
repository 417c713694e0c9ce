"""Interfaces (Protocol) implemented by adapters.

Commands depend on these contracts so tests can substitute in-memory fakes
for the HTTP client.
"""
