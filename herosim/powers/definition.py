"""
Catalog record types.

A PowerDefinition is the static classification of a purchasable ability:
its categories, costs, duration, range and behavior flags. A
ModifierDefinition carries the fixed cost overrides of an advantage or
limitation. Both are immutable and shared by every character.
"""

from typing import Any

from catchery import log_warning
from pydantic import BaseModel, ConfigDict, Field, field_validator

from herosim.core.constants import DurationClass, PowerCategory, RangeClass


class PowerDefinition(BaseModel):
    """Static catalog entry for one power, skill, characteristic or talent."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="The identifier used by power records.")
    name: str = Field(default="", description="Display name.")
    base: float | None = Field(
        default=None,
        description="Base value of a characteristic or base cost of a power.",
    )
    cost_per_level: float | None = Field(
        default=None,
        description="Character points per level, if the power is bought in levels.",
    )
    types: frozenset[PowerCategory] = Field(
        default_factory=frozenset,
        description="Categories the power belongs to.",
    )
    duration: DurationClass | None = Field(
        default=None,
        description="Default duration class.",
    )
    range: RangeClass | None = Field(
        default=None,
        description="Default range class.",
    )
    costs_end: bool | None = Field(
        default=None,
        description="Whether the power costs endurance to use.",
    )
    target: str | None = Field(
        default=None,
        description="What the power is targeted against, e.g. \"target's dcv\".",
    )
    only_for: list[str] = Field(
        default_factory=list,
        description="Actor kinds the power is restricted to.",
    )
    ignore_for: list[str] = Field(
        default_factory=list,
        description="Actor kinds that never carry the power.",
    )
    dice: bool = Field(
        default=False,
        description="Whether the power's levels are dice of effect.",
    )

    @field_validator("types", mode="before")
    @classmethod
    def _parse_types(cls, value: Any) -> frozenset[PowerCategory]:
        categories = set()
        for entry in value or []:
            try:
                categories.add(PowerCategory(entry))
            except ValueError:
                log_warning(
                    f"Unknown power category '{entry}'",
                    {"category": entry},
                )
                categories.add(PowerCategory.UNKNOWN)
        return frozenset(categories)

    @field_validator("dice", mode="before")
    @classmethod
    def _parse_dice(cls, value: Any) -> bool:
        return bool(value)

    def model_post_init(self, _: Any) -> None:
        assert self.key, "Power definitions must have a key."
        assert self.cost_per_level is None or self.cost_per_level >= 0, (
            f"Cost per level of {self.key} must not be negative."
        )

    def has(self, category: PowerCategory) -> bool:
        return category in self.types

    @property
    def is_attack(self) -> bool:
        return PowerCategory.ATTACK in self.types

    @property
    def is_adjustment(self) -> bool:
        return PowerCategory.ADJUSTMENT in self.types

    @property
    def is_characteristic(self) -> bool:
        return PowerCategory.CHARACTERISTIC in self.types

    @property
    def is_defense(self) -> bool:
        return PowerCategory.DEFENSE in self.types

    @property
    def is_movement(self) -> bool:
        return PowerCategory.MOVEMENT in self.types

    @property
    def is_sense_affecting(self) -> bool:
        return PowerCategory.SENSE_AFFECTING in self.types

    @property
    def is_framework(self) -> bool:
        return PowerCategory.FRAMEWORK in self.types

    @property
    def is_skill(self) -> bool:
        return PowerCategory.SKILL in self.types

    @property
    def is_enhancer(self) -> bool:
        return PowerCategory.ENHANCER in self.types

    @property
    def is_mental(self) -> bool:
        return PowerCategory.MENTAL in self.types

    @property
    def is_activatable(self) -> bool:
        """Constant and persistent powers can be switched on and off."""
        return self.duration in (DurationClass.CONSTANT, DurationClass.PERSISTENT) and not (
            self.is_characteristic
        )


class ModifierDefinition(BaseModel):
    """Cost overrides and flags for an advantage or limitation."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="The modifier identifier.")
    base_cost: float | None = Field(
        default=None,
        description="Fixed cost replacing the value declared on the power record.",
    )
    multiplier: float | None = Field(
        default=None,
        description="Multiplier applied to the modifier value.",
    )
    affects_damage_classes: bool = Field(
        default=False,
        description="Whether the advantage counts toward damage classes.",
    )
