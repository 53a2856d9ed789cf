"""
Pydantic models for transport-level request/response schemas.
"""
