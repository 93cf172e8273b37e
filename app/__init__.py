# Keep this import light: alembic env.py loads it before any model module.
from app.shared.models.base import Base

__all__ = ["Base"]
