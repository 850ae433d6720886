"""
Database model registry.

Importing this module ensures all table models are registered with
SQLModel's metadata, which is required before calling ``create_all()``.
"""

from app.models.donor import Donor  # noqa: F401
