"""
Persistence Module

SQLite database for tracking:
- Quote inventory
- The in-progress game session
- Player statistics
"""

from .models import (
    Base,
    QuoteRecord,
    GameRecord,
    StatisticsRecord,
)
from .database import Database
from .quote_repository import QuoteRepository, DEFAULT_QUOTES
from .session_store import SessionStore
from .stats_repository import StatisticsStore

__all__ = [
    # Models
    'Base',
    'QuoteRecord',
    'GameRecord',
    'StatisticsRecord',
    # Database
    'Database',
    # Stores
    'QuoteRepository',
    'DEFAULT_QUOTES',
    'SessionStore',
    'StatisticsStore',
]
