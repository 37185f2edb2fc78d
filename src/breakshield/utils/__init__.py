"""Utility package initialization."""
from .helpers import format_countdown, selection_summary

__all__ = ['format_countdown', 'selection_summary']
