"""API package initialization."""
from .server import app, set_services, start

__all__ = ['app', 'set_services', 'start']
