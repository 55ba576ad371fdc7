"""Repository modules for Stonks Discord Bot."""
from stonks.repositories.database import Database, AlertState, Side

__all__ = [
    'Database',
    'AlertState',
    'Side',
]
