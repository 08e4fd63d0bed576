# app/routers/__init__.py

from app.routers import health
from app.routers import audit

__all__ = ["health", "audit"]
