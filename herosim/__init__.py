"""
HERO System combat engine.

This package resolves attacks, damage, defenses, knockback and adjustment
powers for characters built with either the 6th or the 5th edition rules.
"""

__version__ = "0.1.0"
