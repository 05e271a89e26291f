"""
Character module for the combat engine.

This module holds the character record read by the engines and the combined
update written back once a resolution completes.
"""

from .character import Character, CharacteristicValue
from .update import CharacterUpdate, apply_update

__all__ = ["Character", "CharacteristicValue", "CharacterUpdate", "apply_update"]
