"""UI package initialization."""
from .main_window import BreakShieldUI, create_ui

__all__ = ['BreakShieldUI', 'create_ui']
