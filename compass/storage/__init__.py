"""
Session storage for Compass.
"""
from compass.storage.models import Message
from compass.storage.session_store import SessionStore

__all__ = ["Message", "SessionStore"]
