# This project was developed with assistance from AI tools.
"""Pydantic response models for admin endpoints."""

from pydantic import BaseModel


class SeedResponse(BaseModel):
    """Response for POST /api/admin/seed."""

    status: str
    templates: int
    catalog_hash: str
