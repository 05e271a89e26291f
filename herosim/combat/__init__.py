"""
Combat module for the combat engine.

This module handles attack resolution: to-hit rolls, endurance, defense
determination, the damage pipeline, knockback, adjustment powers and the
resolver that ties them together.
"""

from .attack import AttackOptions, TargetInfo
from .damage import DamageOptions, DamageRoll
from .resolver import CombatResolver
from .results import (
    AdjustmentResult,
    DamageResult,
    KnockbackResult,
    SenseAffectingResult,
    ToggleResult,
    ToHitResult,
)

__all__ = [
    "AdjustmentResult",
    "AttackOptions",
    "CombatResolver",
    "DamageOptions",
    "DamageResult",
    "DamageRoll",
    "KnockbackResult",
    "SenseAffectingResult",
    "TargetInfo",
    "ToggleResult",
    "ToHitResult",
]
