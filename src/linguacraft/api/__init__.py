"""
FastAPI application layer for LinguaCraft.

Exposes each registered flow as an HTTP endpoint and maps flow errors onto
JSON error responses.
"""
