"""
Core provider logic.

Nothing here imports httpx or knows about the storage backend: key
derivation, unit formatting, value objects and the error taxonomy can be
tested in isolation.
"""
