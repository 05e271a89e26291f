"""
Core system module for the combat engine.

This module contains the fundamental components shared by every engine,
including rules constants, configuration, dice rolling, content loading,
logging and error handling.
"""

from .config import DEFAULT_CONFIG, CombatConfig
from .constants import (
    ActorType,
    AttackClass,
    AutomationLevel,
    CombatValue,
    DurationClass,
    ExtraDice,
    PowerCategory,
    RangeClass,
    RulesEdition,
    StunBodyDamage,
)
from .dice import DiceRoll, DiceRoller, ScriptedDiceRoller

__all__ = [
    "ActorType",
    "AttackClass",
    "AutomationLevel",
    "CombatConfig",
    "CombatValue",
    "DEFAULT_CONFIG",
    "DiceRoll",
    "DiceRoller",
    "DurationClass",
    "ExtraDice",
    "PowerCategory",
    "RangeClass",
    "RulesEdition",
    "ScriptedDiceRoller",
    "StunBodyDamage",
]
