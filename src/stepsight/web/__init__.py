"""
Web API for pipeline status, the latest alert and user settings.
"""

from .app import create_app
from .state import state

__all__ = ["create_app", "state"]
