"""
Event Models Module - Pydantic schemas for reading back the interaction log
"""

from .interaction_row import InteractionRow

__all__ = ["InteractionRow"]
