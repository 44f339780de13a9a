"""Database module for CompileStrength."""

from .database import SQLiteRepository, get_default_db_path
from .schema import SCHEMA

__all__ = ["SQLiteRepository", "get_default_db_path", "SCHEMA"]
