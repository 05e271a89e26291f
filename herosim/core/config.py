"""
Combat configuration.

The host application decides once, at startup, which optional rules are in
play. The resulting CombatConfig is passed explicitly to every engine call.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import ActorType, AutomationLevel, HitLocationTracking


class CombatConfig(BaseModel):
    """Optional rules and automation settings for one combat session."""

    model_config = ConfigDict(frozen=True)

    hit_locations: bool = Field(
        default=False,
        description="Roll or aim for hit locations and apply their multipliers.",
    )
    hit_location_tracking: HitLocationTracking = Field(
        default=HitLocationTracking.NONE,
        description="Whether sided locations also roll for left or right.",
    )
    knockback: bool = Field(
        default=False,
        description="Roll knockback for attacks with a knockback multiplier.",
    )
    use_endurance: bool = Field(
        default=True,
        description="Track END spent by powers and STR.",
    )
    stunned: bool = Field(
        default=True,
        description="Targets taking more STUN than their CON are Stunned.",
    )
    optional_maneuvers: bool = Field(
        default=False,
        description="Offer the optional combat maneuvers.",
    )
    automation: AutomationLevel = Field(
        default=AutomationLevel.NONE,
        description="Which characteristic updates are written automatically.",
    )

    def writes_endurance(self, actor_type: ActorType) -> bool:
        """Whether END spent by a character of this type is written automatically."""
        if self.automation in (AutomationLevel.ALL, AutomationLevel.PC_END_ONLY):
            return True
        return self.automation == AutomationLevel.NPC_ONLY and actor_type == ActorType.NPC

    def writes_damage(self, actor_type: ActorType) -> bool:
        """Whether STUN and BODY damage to a character of this type is written automatically."""
        if self.automation == AutomationLevel.ALL:
            return True
        return (
            self.automation in (AutomationLevel.NPC_ONLY, AutomationLevel.PC_END_ONLY)
            and actor_type == ActorType.NPC
        )

    @classmethod
    def from_json_file(cls, filepath: Path) -> "CombatConfig":
        """
        Loads settings exported by the host application.

        Args:
            filepath (Path): A JSON file holding a single object of settings.

        Returns:
            CombatConfig: The validated settings.

        Raises:
            ValueError: If the file is missing or does not hold an object.

        """
        if not filepath.exists() or not filepath.is_file():
            raise ValueError(f"Combat settings file not found: {filepath}")
        with open(filepath, "r", encoding="utf-8") as f:
            data: Any = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Combat settings in {filepath} must be a JSON object")
        return cls.model_validate(data)


DEFAULT_CONFIG = CombatConfig()
