"""
Power catalog lookups.

The catalog is a pure, total lookup over fixed tables. A missing entry is not
an error: callers fall back to the explicit data on the power record.
"""

from herosim.core.constants import RulesEdition
from herosim.core.content import CatalogRepository

from .definition import ModifierDefinition, PowerDefinition


def lookup(identifier: str, edition: RulesEdition) -> PowerDefinition | None:
    """
    Returns the catalog entry of a power for a rules edition.

    Args:
        identifier (str): The power identifier, e.g. "HKA".
        edition (RulesEdition): The rules edition.

    Returns:
        PowerDefinition | None: The entry, or None when the edition has no such power.

    """
    if not identifier:
        return None
    return CatalogRepository().get_power(identifier, edition)


def lookup_modifier(identifier: str) -> ModifierDefinition | None:
    """
    Returns the cost overrides of an advantage or limitation, if it has any.

    Args:
        identifier (str): The modifier identifier, e.g. "ARMORPIERCING".

    Returns:
        ModifierDefinition | None: The overrides, or None.

    """
    if not identifier:
        return None
    return CatalogRepository().get_modifier(identifier)


def cost_per_level(identifier: str, edition: RulesEdition, default: float = 1) -> float:
    """Catalog cost per level, falling back to the default when unknown."""
    definition = lookup(identifier, edition)
    if definition is None or definition.cost_per_level is None:
        return default
    return definition.cost_per_level
