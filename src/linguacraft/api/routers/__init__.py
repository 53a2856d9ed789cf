"""
API route handlers.

`flows` serves every registered flow; `health` reports service status.
"""
