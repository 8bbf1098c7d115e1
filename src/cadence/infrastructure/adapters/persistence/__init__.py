# Infrastructure Persistence Adapters Package
from .memory import InMemoryReviewRepository
from .sqlite import SqliteReviewRepository

__all__ = ["InMemoryReviewRepository", "SqliteReviewRepository"]
