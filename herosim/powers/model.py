"""
Declared power records.

A PowerInstance is what a character actually bought: an identifier, levels,
adders and modifiers, possibly nested inside a framework. The records are
immutable value objects. Every derived number (active points, real cost,
damage classes) is computed from them by the cost engine and is never stored
back onto the record.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Adder(BaseModel):
    """A sub-parameter of a power or modifier with its own cost and levels."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(description="The adder identifier, e.g. PLUSONEPIP.")
    alias: str = Field(default="", description="Display name of the adder.")
    base_cost: float = Field(default=0, description="Declared cost of the adder.")
    levels: int = Field(default=0, ge=0, description="Levels bought in the adder.")
    lvl_cost: float | None = Field(
        default=None,
        description="Cost per block of levels, when the adder is bought in levels.",
    )
    lvl_val: float | None = Field(
        default=None,
        description="How many levels make up one cost block.",
    )
    option_id: str | None = Field(default=None, description="Selected option identifier.")
    input: str | None = Field(default=None, description="Free text input of the adder.")
    selected: bool | None = Field(
        default=None,
        description="For category adders, whether the category itself was selected.",
    )
    multiplier: float | None = Field(
        default=None,
        description="Multiplier applied to a limitation by this adder.",
    )
    adders: list["Adder"] = Field(
        default_factory=list,
        description="Nested adders of a category adder.",
    )

    def model_post_init(self, _: Any) -> None:
        assert self.identifier, "Adder identifier must not be empty."
        self.__dict__["identifier"] = self.identifier.upper()


class Modifier(BaseModel):
    """An advantage or limitation applied to a power."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(description="The modifier identifier, e.g. AOE.")
    alias: str = Field(default="", description="Display name of the modifier.")
    base_cost: float = Field(
        default=0,
        description="Declared signed value: positive for advantages, negative for limitations.",
    )
    levels: int = Field(default=0, ge=0, description="Levels bought in the modifier.")
    option_id: str | None = Field(default=None, description="Selected option identifier.")
    option_alias: str | None = Field(default=None, description="Selected option text.")
    input: str | None = Field(default=None, description="Free text input of the modifier.")
    adders: list[Adder] = Field(default_factory=list, description="Adders of the modifier.")
    private: bool = Field(
        default=False,
        description="Applies to the power itself rather than being granted by it.",
    )

    def model_post_init(self, _: Any) -> None:
        assert self.identifier, "Modifier identifier must not be empty."
        self.__dict__["identifier"] = self.identifier.upper()

    def adder(self, identifier: str) -> Adder | None:
        identifier = identifier.upper()
        return next((a for a in self.adders if a.identifier == identifier), None)

    def has_adder(self, identifier: str) -> bool:
        return self.adder(identifier) is not None


class Charges(BaseModel):
    """Remaining uses of a power bought with charges."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0, description="Charges left.")
    max: int = Field(ge=0, description="Charges when fully recovered.")


class PowerInstance(BaseModel):
    """A concrete power, skill, talent or maneuver owned by a character."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier of this record.")
    identifier: str = Field(description="The catalog identifier, e.g. ENERGYBLAST.")
    name: str = Field(default="", description="Display name.")
    levels: int = Field(default=0, ge=0, description="Levels bought.")
    base_cost: float | None = Field(
        default=None,
        description="Declared base cost, used when the catalog has none.",
    )
    cost_per_level: float | None = Field(
        default=None,
        description="Declared cost per level overriding the catalog.",
    )
    option_id: str | None = Field(default=None, description="Selected option identifier.")
    option_alias: str | None = Field(default=None, description="Selected option text.")
    input: str | None = Field(
        default=None,
        description="Free text input, e.g. the characteristics an adjustment power affects.",
    )
    adders: list[Adder] = Field(default_factory=list, description="Adders of the power.")
    modifiers: list[Modifier] = Field(
        default_factory=list,
        description="Advantages and limitations of the power.",
    )
    parent: "PowerInstance | None" = Field(
        default=None,
        description="The framework or compound power this record is nested in.",
    )
    ultra_slot: bool = Field(
        default=False,
        description="A fixed Multipower slot rather than a variable one.",
    )
    active: bool = Field(default=True, description="Whether a switchable power is on.")
    killing: bool | None = Field(
        default=None,
        description="Declared killing flag for powers that do not imply one.",
    )
    uses_strength: bool | None = Field(
        default=None,
        description="Whether the character's STR adds to the attack.",
    )
    standard_effect: bool = Field(
        default=False,
        description="Use the standard effect values instead of rolling.",
    )
    use_end_reserve: bool = Field(
        default=False,
        description="Pay END from an Endurance Reserve instead of personal END.",
    )
    charges: Charges | None = Field(default=None, description="Charges, if bought.")
    ocv: int = Field(default=0, description="OCV modifier of a maneuver.")
    dcv: int = Field(default=0, description="DCV modifier of a maneuver.")
    damage_classes: int = Field(
        default=0,
        description="Damage classes a martial maneuver adds.",
    )
    effect: str = Field(default="", description="Effect text of a maneuver.")
    csl_allocation: dict[str, int] = Field(
        default_factory=dict,
        description="Combat skill levels assigned to ocv, omcv, dcv, dmcv or dc.",
    )
    everyman: bool = Field(default=False, description="A free everyman skill.")
    native_tongue: bool = Field(default=False, description="A free native language.")
    body_levels: int = Field(default=0, ge=0, description="BODY bought for a barrier.")
    length_levels: int = Field(default=0, ge=0, description="Length bought for a barrier.")
    height_levels: int = Field(default=0, ge=0, description="Height bought for a barrier.")
    width_levels: float = Field(default=0, ge=0, description="Width bought for a barrier.")
    points: int = Field(default=0, ge=0, description="Points of a Duplication.")
    base_points: int = Field(default=0, ge=0, description="Points of a Follower.")
    number: int = Field(default=0, ge=0, description="How many Followers.")

    def model_post_init(self, _: Any) -> None:
        assert self.id, "Power record id must not be empty."
        assert self.identifier, "Power identifier must not be empty."
        self.__dict__["identifier"] = self.identifier.upper()

    @property
    def display_name(self) -> str:
        return self.name or self.identifier

    def modifier(self, identifier: str) -> Modifier | None:
        identifier = identifier.upper()
        return next((m for m in self.modifiers if m.identifier == identifier), None)

    def has_modifier(self, *identifiers: str) -> bool:
        return any(self.modifier(identifier) is not None for identifier in identifiers)

    def adder(self, identifier: str) -> Adder | None:
        identifier = identifier.upper()
        return next((a for a in self.adders if a.identifier == identifier), None)

    def has_adder(self, identifier: str) -> bool:
        return self.adder(identifier) is not None

    def modifier_levels(self, identifier: str) -> int:
        """Levels of a modifier, or 0 when the power does not have it."""
        modifier = self.modifier(identifier)
        return modifier.levels if modifier else 0

    def all_modifiers(self) -> list[Modifier]:
        """Own modifiers followed by those inherited from parent frameworks."""
        inherited = self.parent.all_modifiers() if self.parent else []
        return [*self.modifiers, *inherited]


Adder.model_rebuild()
PowerInstance.model_rebuild()
