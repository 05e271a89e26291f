"""
Dice module for the combat engine.

Provides the dice roller used by every engine, a scripted roller that replays
predetermined faces, and the record of a rolled damage formula with its
STUN, counted BODY and penetrating BODY readings.
"""

import math
import random
from collections.abc import Iterable

from catchery import log_warning
from pydantic import BaseModel, Field

from .constants import ExtraDice

MAX_DICE_PER_ROLL = 1000


class DiceRoller:
    """Rolls dice from an injectable random source."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def _face(self, sides: int) -> int:
        return self.rng.randint(1, sides)

    def roll(self, number: int, sides: int = 6) -> list[int]:
        """
        Rolls a number of dice.

        Args:
            number (int): How many dice to roll.
            sides (int): The number of faces on each die.

        Returns:
            list[int]: The individual faces. Empty for zero or invalid dice.

        """
        if number <= 0:
            return []
        if sides < 1:
            log_warning(
                "Cannot roll dice with less than one side",
                {"number": number, "sides": sides},
            )
            return []
        if number > MAX_DICE_PER_ROLL:
            log_warning(
                f"Too many dice requested, clamping to {MAX_DICE_PER_ROLL}",
                {"number": number, "sides": sides},
            )
            number = MAX_DICE_PER_ROLL
        return [self._face(sides) for _ in range(number)]

    def roll_3d6(self) -> list[int]:
        """Rolls the 3d6 used for to-hit, activation and location rolls."""
        return self.roll(3, 6)


class ScriptedDiceRoller(DiceRoller):
    """
    Replays predetermined faces in order.

    Used to re-apply a roll that was made earlier (for example when the same
    damage roll is applied to several targets) and to make resolution fully
    deterministic. Once the script runs out the roller falls back to random
    faces.
    """

    def __init__(self, faces: Iterable[int], rng: random.Random | None = None) -> None:
        super().__init__(rng)
        self.faces = list(faces)
        self.consumed: list[int] = []

    def _face(self, sides: int) -> int:
        if not self.faces:
            log_warning(
                "Scripted dice exhausted, rolling randomly",
                {"sides": sides, "consumed": len(self.consumed)},
            )
            face = super()._face(sides)
        else:
            face = self.faces.pop(0)
        self.consumed.append(face)
        return face


def counted_body(face: int) -> int:
    """BODY counted from a single d6 face of a normal attack."""
    if face <= 1:
        return 0
    if face >= 6:
        return 2
    return 1


def dice_formula(dice: int, extra: ExtraDice = ExtraDice.ZERO) -> str:
    """Formats a dice count and remainder, e.g. 3d6, 2½d6, 1d6+1 or 4d6-1."""
    if extra == ExtraDice.HALF:
        return f"{dice}½d6" if dice else "½d6"
    formula = f"{dice}d6"
    if extra == ExtraDice.PIP:
        formula += "+1"
    elif extra == ExtraDice.ONE_PIP:
        formula += "-1"
    return formula


class DiceRoll(BaseModel):
    """A rolled damage formula."""

    faces: list[int] = Field(
        default_factory=list,
        description="The individual six-sided die faces.",
    )
    extra: ExtraDice = Field(
        default=ExtraDice.ZERO,
        description="The remainder rolled or added on top of the whole dice.",
    )
    extra_value: int = Field(
        default=0,
        description="Value of the remainder: half die face, +1 pip or -1 pip.",
    )
    standard_effect: bool = Field(
        default=False,
        description="Whether faces were fixed at 3 instead of rolled.",
    )

    @property
    def dice(self) -> int:
        return len(self.faces)

    @property
    def formula(self) -> str:
        return dice_formula(self.dice, self.extra)

    @property
    def total(self) -> int:
        """The STUN reading of a normal attack and the BODY of a killing one."""
        return max(0, sum(self.faces) + self.extra_value)

    @property
    def body(self) -> int:
        """The counted BODY reading of a normal attack."""
        if self.standard_effect:
            bonus = 1 if self.extra in (ExtraDice.HALF, ExtraDice.PIP) else 0
            return self.dice + bonus
        return sum(counted_body(face) for face in self.faces)

    def penetrating_body(self, impenetrable: int = 0) -> int:
        """
        Penetrating BODY counted from the same faces.

        Args:
            impenetrable (int): The defender's impenetrable value.

        Returns:
            int: Counted BODY less impenetrable, never below zero.

        """
        if self.standard_effect:
            counted = self.dice
        else:
            counted = sum(counted_body(face) for face in self.faces)
        return max(0, counted - impenetrable)

    def truncated(self, dice: int, extra: ExtraDice) -> "DiceRoll":
        """
        Returns the roll cut down to fewer dice, reusing the faces already rolled.

        Args:
            dice (int): Whole dice to keep.
            extra (ExtraDice): The remainder of the reduced formula.

        Returns:
            DiceRoll: The reduced roll.

        """
        dice = max(0, min(dice, self.dice))
        kept = self.faces[:dice]
        extra_value = 0
        if extra == ExtraDice.HALF:
            if dice < self.dice:
                extra_value = math.ceil(self.faces[dice] / 2)
            elif self.extra == ExtraDice.HALF:
                extra_value = self.extra_value
            else:
                extra = ExtraDice.ZERO
        elif extra == ExtraDice.PIP:
            extra_value = 1
        elif extra == ExtraDice.ONE_PIP:
            extra_value = -1
        return DiceRoll(
            faces=kept,
            extra=extra,
            extra_value=extra_value,
            standard_effect=self.standard_effect,
        )


def roll_damage_dice(
    roller: DiceRoller,
    dice: int,
    extra: ExtraDice = ExtraDice.ZERO,
    standard_effect: bool = False,
) -> DiceRoll:
    """
    Rolls a damage formula, or assigns the standard effect values.

    Args:
        roller (DiceRoller): The dice source.
        dice (int): Whole six-sided dice.
        extra (ExtraDice): The remainder on top of the whole dice.
        standard_effect (bool): Use 3 per die and 1 per half die instead of rolling.

    Returns:
        DiceRoll: The rolled formula.

    """
    dice = max(0, dice)
    if standard_effect:
        faces = [3] * dice
        half_value = 1
    else:
        faces = roller.roll(dice, 6)
        half_value = 0
    extra_value = 0
    if extra == ExtraDice.HALF:
        extra_value = half_value or (roller.roll(1, 3) or [0])[0]
    elif extra == ExtraDice.PIP:
        extra_value = 1
    elif extra == ExtraDice.ONE_PIP:
        extra_value = -1
    return DiceRoll(
        faces=faces,
        extra=extra,
        extra_value=extra_value,
        standard_effect=standard_effect,
    )
