"""
Effects module for the combat engine.

This module contains the timed effects that adjust characteristics, impose
lingering combat value changes or conditions, and the manager that merges,
ages and expires them.
"""

from .effect_manager import EffectManager
from .timed_effect import TimedEffect

__all__ = ["EffectManager", "TimedEffect"]
