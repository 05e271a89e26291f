"""
Combined character updates.

Every resolution produces at most one CharacterUpdate per character: new
current values, charges, reserve END and timed-effect changes. Applying it is
the single write a resolution makes to that character, so a character is
never left half updated.
"""

from pydantic import BaseModel, Field

from herosim.core.logging import log_debug, log_warning
from herosim.effects.timed_effect import TimedEffect

from .character import Character


class CharacterUpdate(BaseModel):
    """A batch of writes to one character."""

    character_id: str = Field(description="Id of the character to update.")
    values: dict[str, int] = Field(
        default_factory=dict,
        description="New current values keyed by lower case characteristic.",
    )
    charges: dict[str, int] = Field(
        default_factory=dict,
        description="New remaining charges keyed by power record id.",
    )
    active: dict[str, bool] = Field(
        default_factory=dict,
        description="New on/off state keyed by power record id.",
    )
    endurance_reserve: int | None = Field(
        default=None,
        description="New END left in the Endurance Reserve.",
    )
    create_effects: list[TimedEffect] = Field(
        default_factory=list,
        description="Effects to add; an effect from a live source updates it instead.",
    )
    update_effects: list[TimedEffect] = Field(
        default_factory=list,
        description="New versions of live effects, matched on source and characteristic.",
    )
    delete_sources: list[str] = Field(
        default_factory=list,
        description="Source power ids whose effects are removed.",
    )

    @property
    def is_empty(self) -> bool:
        return not (
            self.values
            or self.charges
            or self.active
            or self.endurance_reserve is not None
            or self.create_effects
            or self.update_effects
            or self.delete_sources
        )

    def merge(self, other: "CharacterUpdate") -> "CharacterUpdate":
        """Combines two updates to the same character, the other one winning conflicts."""
        assert other.character_id == self.character_id, "Cannot merge updates of different characters."
        return CharacterUpdate(
            character_id=self.character_id,
            values={**self.values, **other.values},
            charges={**self.charges, **other.charges},
            active={**self.active, **other.active},
            endurance_reserve=(
                other.endurance_reserve
                if other.endurance_reserve is not None
                else self.endurance_reserve
            ),
            create_effects=[*self.create_effects, *other.create_effects],
            update_effects=[*self.update_effects, *other.update_effects],
            delete_sources=[*self.delete_sources, *other.delete_sources],
        )


def apply_update(character: Character, update: CharacterUpdate) -> None:
    """
    Writes an update to a character.

    Values are written first, then charges and power state, then effects, so
    effect changes land on top of the new values.

    Args:
        character (Character): The character to update.
        update (CharacterUpdate): The writes to make.

    """
    if update.character_id != character.id:
        log_warning(
            "Update does not belong to this character, skipping it",
            {"character": character.id, "update": update.character_id},
        )
        return

    for key, value in update.values.items():
        character.characteristic(key).value = value

    for power_id, value in update.charges.items():
        power = character.power(power_id)
        if power is None or power.charges is None:
            log_warning(
                "Cannot set charges of a power without charges",
                {"character": character.id, "power": power_id},
            )
            continue
        character.replace_power(
            power.model_copy(update={"charges": power.charges.model_copy(update={"value": value})})
        )

    for power_id, active in update.active.items():
        power = character.power(power_id)
        if power is None:
            log_warning("Cannot toggle an unknown power", {"character": character.id, "power": power_id})
            continue
        character.replace_power(power.model_copy(update={"active": active}))

    if update.endurance_reserve is not None:
        if character.endurance_reserve is None:
            log_warning("Character has no Endurance Reserve", {"character": character.id})
        else:
            character.endurance_reserve.value = update.endurance_reserve

    for source in update.delete_sources:
        character.effects.remove_from_source(source)
    for effect in update.create_effects:
        character.effects.add_effect(effect)
    for effect in update.update_effects:
        live = character.effects.find(effect.source, effect.characteristic)
        if live is None:
            character.effects.add_effect(effect)
        else:
            character.effects.update_effect(live, effect.value, effect.active_points, effect.name)

    log_debug(f"Updated {character.name}", {"values": update.values, "effects": len(update.create_effects)})
