"""
Database module for power status persistence
"""

from .manager import DatabaseManager
from .models import PowerStatusRecord

__all__ = ['DatabaseManager', 'PowerStatusRecord']
