"""
Utilities module for the combat engine.

Provides the singleton metaclass and the rounding helpers shared by the cost
and resolution engines.
"""

from __future__ import annotations

import math
from typing import Any, Generic

from typing_extensions import TypeVar

# ---- Singleton Metaclass ----


_T = TypeVar("_T")


class Singleton(type, Generic[_T]):
    """Metaclass that returns the same instance every time."""

    _instances: dict[Singleton[_T], _T] = {}

    def __call__(cls, *args: Any, **kwargs: Any) -> _T:
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


# ---- Rounding ----


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, exact halves going up."""
    return math.floor(value + 0.5)


def round_favor_player_down(value: float) -> int:
    """
    Rounds to the nearest integer, with exact halves rounded down.

    Args:
        value (float): The value to round.

    Returns:
        int: The rounded value.

    """
    if value % 1 == 0.5:
        return math.floor(value)
    return round_half_up(value)


def round_favor_player_up(value: float) -> int:
    """
    Rounds to the nearest integer, with exact halves rounded up.

    Args:
        value (float): The value to round.

    Returns:
        int: The rounded value.

    """
    if value % 1 == 0.5:
        return math.ceil(value)
    return round_half_up(value)


def signed_string(value: float) -> str:
    """Formats a number with an explicit sign, e.g. +2 or -1."""
    if value == int(value):
        value = int(value)
    return f"+{value}" if value >= 0 else f"{value}"


def make_ocv_modifier(value: float) -> int:
    """Truncates a fractional OCV modifier toward zero."""
    if value < 0:
        return math.ceil(value)
    return math.floor(value)
