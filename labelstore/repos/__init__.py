"""
Repository layer for data access operations.

This package contains repository modules that encapsulate database
statements for domain entities.
"""

from labelstore.repos.label_repo import LabelRepository

__all__ = ["LabelRepository"]
