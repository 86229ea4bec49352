# backend/app/repositories/__init__.py
"""
Persistence layer.

Usage:
    from app.repositories import PortfolioRepository
    from app.repositories import SqlAlchemyPortfolioRepository
    from app.repositories import InMemoryPortfolioRepository
"""

from app.repositories.base import PortfolioRepository
from app.repositories.memory_repository import InMemoryPortfolioRepository
from app.repositories.sql_repository import SqlAlchemyPortfolioRepository

__all__ = [
    "PortfolioRepository",
    "InMemoryPortfolioRepository",
    "SqlAlchemyPortfolioRepository",
]
