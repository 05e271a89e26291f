"""
Effect manager for the combat engine.

Tracks the timed effects applied to one character, keeps at most one live
effect per (source power, characteristic) pair, applies each effect's change
to the owner's characteristics, and reverts it when the effect expires or is
removed.
"""

from collections.abc import Iterator
from typing import Any

from herosim.core.logging import log_debug, log_error

from .timed_effect import TimedEffect


class EffectManager:
    """
    Manages the timed effects of a character.

    Attributes:
        owner (Any):
            The Character whose characteristics the effects change.
        active_effects (list[TimedEffect]):
            The live effects, in application order.

    """

    def __init__(self, owner: Any) -> None:
        self.owner: Any = owner
        self.active_effects: list[TimedEffect] = []

    def __iter__(self) -> Iterator[TimedEffect]:
        yield from self.active_effects

    def __len__(self) -> int:
        return len(self.active_effects)

    # === Lookup ===

    def find(self, source: str, characteristic: str | None = None) -> TimedEffect | None:
        """Returns the live effect for a (source, characteristic) pair."""
        if characteristic:
            characteristic = characteristic.lower()
        return next(
            (e for e in self.active_effects if e.key == (source, characteristic)),
            None,
        )

    def from_source(self, source: str) -> list[TimedEffect]:
        return [e for e in self.active_effects if e.source == source]

    def has_effect_from(self, source: str) -> bool:
        return any(e.source == source for e in self.active_effects)

    def statuses(self) -> set[str]:
        return {e.status for e in self.active_effects if e.status}

    def total_for(self, characteristic: str) -> int:
        """Sum of the changes live effects make to a characteristic."""
        characteristic = characteristic.lower()
        return sum(e.value for e in self.active_effects if e.characteristic == characteristic)

    # === Effect Management ===

    def add_effect(self, effect: TimedEffect) -> TimedEffect:
        """
        Adds an effect, or updates the live one from the same source.

        Args:
            effect (TimedEffect): The effect to add.

        Returns:
            TimedEffect: The effect now live for the (source, characteristic) pair.

        """
        existing = self.find(effect.source, effect.characteristic)
        if existing is not None:
            return self.update_effect(existing, effect.value, effect.active_points, effect.name)
        self._shift(effect, effect.value)
        self.active_effects.append(effect)
        log_debug(
            f"{effect.name} applied to {self.owner.name}",
            {"source": effect.source, "seconds": effect.seconds},
        )
        return effect

    def update_effect(
        self,
        effect: TimedEffect,
        value: int,
        active_points: float | None = None,
        name: str | None = None,
    ) -> TimedEffect:
        """
        Changes the magnitude of a live effect, shifting the characteristic by the difference.

        Args:
            effect (TimedEffect): The live effect.
            value (int): The new total change.
            active_points (float | None): The new accumulated active points.
            name (str | None): The new display name.

        Returns:
            TimedEffect: The updated effect.

        """
        if effect not in self.active_effects:
            log_error(
                "Cannot update an effect that is not live, adding it instead",
                {"effect": effect.name, "owner": self.owner.name},
            )
            return self.add_effect(effect.model_copy(update={"value": value}))
        self._shift(effect, value - effect.value)
        effect.value = value
        if active_points is not None:
            effect.active_points = active_points
        if name:
            effect.name = name
        return effect

    def remove_effect(self, effect: TimedEffect) -> bool:
        """Removes a live effect and reverts its change."""
        if effect not in self.active_effects:
            return False
        self.active_effects.remove(effect)
        self._shift(effect, -effect.value)
        log_debug(f"{effect.name} removed from {self.owner.name}", {"source": effect.source})
        return True

    def remove_from_source(self, source: str) -> list[TimedEffect]:
        """Removes every effect a power created, e.g. when a maintained power ends."""
        removed = self.from_source(source)
        for effect in removed:
            self.remove_effect(effect)
        return removed

    # === Time ===

    def advance_time(self, seconds: float) -> list[TimedEffect]:
        """
        Counts down timed effects and removes those that ran out.

        Args:
            seconds (float): Elapsed game time.

        Returns:
            list[TimedEffect]: The effects that expired.

        """
        expired = []
        for effect in list(self.active_effects):
            if effect.seconds is None:
                continue
            effect.seconds -= seconds
            if effect.seconds <= 0:
                expired.append(effect)
                self.remove_effect(effect)
        return expired

    def start_phase(self) -> list[TimedEffect]:
        """Removes the effects that only last until the owner's next phase."""
        expired = [e for e in self.active_effects if e.next_phase]
        for effect in expired:
            self.remove_effect(effect)
        return expired

    # === Helpers ===

    def _shift(self, effect: TimedEffect, delta: int) -> None:
        if not effect.characteristic or not delta:
            return
        record = self.owner.characteristic(effect.characteristic)
        record.value += delta
        if effect.affects_max:
            record.max += delta
