"""Domain models."""

from src.domain.models.base import Base
from src.domain.models.page import Page


__all__ = ["Base", "Page"]
