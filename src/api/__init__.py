"""
API module for the power monitor HTTP surface
"""

from .main_api import PowerMonitorAPI

__all__ = ['PowerMonitorAPI']
