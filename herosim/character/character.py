"""
Character module for the combat engine.

Defines the Character record the engines read from and write to: a
characteristic table of current/max pairs, the purchased powers, an optional
Endurance Reserve, and the per-character effect manager holding timed
effects.
"""

from typing import Any

from pydantic import BaseModel, Field

from herosim.core.constants import ActorType, PowerCategory, RulesEdition
from herosim.core.error_handling import require_non_empty_string
from herosim.core.logging import log_debug
from herosim.effects.effect_manager import EffectManager
from herosim.powers.catalog import lookup
from herosim.powers.model import PowerInstance

# Statuses that prevent a character from acting.
INCAPACITATING_STATUSES = ("stunned", "unconscious", "aborted")


class CharacteristicValue(BaseModel):
    """The current and maximum value of one characteristic."""

    value: int = Field(description="The current value.")
    max: int = Field(description="The value when fully recovered.")

    def __str__(self) -> str:
        return f"{self.value}/{self.max}"


class Character:
    """
    A combatant as seen by the resolution engines.

    Attributes:
        id (str):
            Identifier used by results and updates.
        name (str):
            Display name.
        actor_type (ActorType):
            Whether the character is played by a player or by the game master.
        edition (RulesEdition):
            The rules edition the character was built with.
        characteristics (dict[str, CharacteristicValue]):
            Current/max pairs keyed by lower case characteristic, e.g. "str".
        powers (list[PowerInstance]):
            Every purchased power, skill, talent and maneuver.
        endurance_reserve (CharacteristicValue | None):
            END stored in an Endurance Reserve, if one was bought.
        effects (EffectManager):
            The timed effects currently applied to the character.

    """

    def __init__(
        self,
        id: str,
        name: str,
        actor_type: ActorType = ActorType.NPC,
        edition: RulesEdition = RulesEdition.SIXTH,
        characteristics: dict[str, int | CharacteristicValue] | None = None,
        powers: list[PowerInstance] | None = None,
        endurance_reserve: CharacteristicValue | None = None,
        statuses: set[str] | None = None,
    ) -> None:
        self.id = require_non_empty_string(id, "character id", {"name": name})
        self.name = name
        self.actor_type = actor_type
        self.edition = edition
        self.characteristics: dict[str, CharacteristicValue] = {}
        for key, value in (characteristics or {}).items():
            if not isinstance(value, CharacteristicValue):
                value = CharacteristicValue(value=value, max=value)
            self.characteristics[key.lower()] = value
        self.powers: list[PowerInstance] = list(powers or [])
        self.endurance_reserve = endurance_reserve
        self._statuses: set[str] = set(statuses or set())
        self.effects = EffectManager(owner=self)

    def __repr__(self) -> str:
        return f"Character({self.id!r}, {self.name!r})"

    # ============================================================================
    # CHARACTERISTICS
    # ============================================================================

    def has_characteristic(self, key: str) -> bool:
        return key.lower() in self.characteristics

    def characteristic(self, key: str) -> CharacteristicValue:
        """
        Returns a characteristic, creating a zero entry for missing ones.

        Args:
            key (str): The characteristic, in any case.

        Returns:
            CharacteristicValue: The live record; changes to it are changes to the character.

        """
        key = key.lower()
        if key not in self.characteristics:
            log_debug(
                f"{self.name} has no {key.upper()}, treating it as 0",
                {"character": self.id},
            )
            self.characteristics[key] = CharacteristicValue(value=0, max=0)
        return self.characteristics[key]

    def value(self, key: str) -> int:
        """The current value of a characteristic, 0 when the character lacks it."""
        record = self.characteristics.get(key.lower())
        return record.value if record else 0

    # ============================================================================
    # POWERS
    # ============================================================================

    def power(self, power_id: str) -> PowerInstance | None:
        return next((p for p in self.powers if p.id == power_id), None)

    def find_powers(self, identifier: str, active_only: bool = True) -> list[PowerInstance]:
        """Every power with the given catalog identifier."""
        identifier = identifier.upper()
        return [
            p
            for p in self.powers
            if p.identifier == identifier and (p.active or not active_only)
        ]

    def powers_in(self, category: PowerCategory, active_only: bool = True) -> list[PowerInstance]:
        """Every power whose catalog entry belongs to a category."""
        found = []
        for power in self.powers:
            if active_only and not power.active:
                continue
            definition = lookup(power.identifier, self.edition)
            if definition is not None and definition.has(category):
                found.append(power)
        return found

    def replace_power(self, power: PowerInstance) -> None:
        """Swaps in a new version of a power record with the same id."""
        for index, existing in enumerate(self.powers):
            if existing.id == power.id:
                self.powers[index] = power
                return
        self.powers.append(power)

    # ============================================================================
    # STATUS
    # ============================================================================

    @property
    def statuses(self) -> set[str]:
        """Statuses set directly plus those carried by timed effects."""
        statuses = set(self._statuses) | self.effects.statuses()
        stun = self.characteristics.get("stun")
        if stun is not None and stun.max > 0 and stun.value <= 0:
            statuses.add("unconscious")
        return statuses

    def add_status(self, status: str) -> None:
        self._statuses.add(status)

    def remove_status(self, status: str) -> None:
        self._statuses.discard(status)

    def has_status(self, status: str) -> bool:
        return status in self.statuses

    def cannot_act_reason(self) -> str | None:
        """
        Explains why the character cannot act, if it cannot.

        Returns:
            str | None: A user-facing reason, or None when the character can act.

        """
        statuses = self.statuses
        for status in INCAPACITATING_STATUSES:
            if status in statuses:
                return f"{self.name} is {status} and cannot act."
        return None

    def can_act(self) -> bool:
        return self.cannot_act_reason() is None

    def to_dict(self) -> dict[str, Any]:
        """A flat snapshot for logging and display."""
        return {
            "id": self.id,
            "name": self.name,
            "actor_type": self.actor_type.value,
            "edition": self.edition.value,
            "characteristics": {k: str(v) for k, v in self.characteristics.items()},
            "statuses": sorted(self.statuses),
            "effects": [effect.name for effect in self.effects.active_effects],
        }
