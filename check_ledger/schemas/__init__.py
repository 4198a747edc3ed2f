"""Pydantic schemas: API contracts, pending items and commit drafts."""
