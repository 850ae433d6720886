"""SQLModel table models: import here so metadata is populated."""

from app.models.donor import Donor  # noqa: F401
