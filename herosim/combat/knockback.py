"""
Knockback.

Knockback is rolled as BODY x multiplier - 2d6, less any knockback
resistance. A negative result is no knockback, zero is a knockdown, and a
positive result pushes the target back 2m per point.
"""

from herosim.core.constants import KnockbackOutcome
from herosim.core.dice import DiceRoller
from herosim.core.logging import log_debug
from herosim.core.tags import Tag, add_modifier_tag

from .results import KnockbackResult

KNOCKBACK_DICE = 2
METERS_PER_POINT = 2


def roll_knockback(
    body: int,
    multiplier: int,
    roller: DiceRoller,
    resistance: int = 0,
    modifier_dice: int = 0,
) -> KnockbackResult:
    """
    Rolls knockback from the BODY that got through defenses.

    Args:
        body (int): BODY damage taken.
        multiplier (int): The attack's knockback multiplier, 1 or 2.
        roller (DiceRoller): The dice source.
        resistance (int): Knockback resistance subtracted from the result.
        modifier_dice (int): Situational dice added to the 2d6, negative to roll fewer.

    Returns:
        KnockbackResult: The roll, its outcome and the distance.

    """
    tags = [Tag(value=str(body * multiplier), label=f"{body} BODY x{multiplier}")]
    dice = max(0, KNOCKBACK_DICE + modifier_dice)
    faces = roller.roll(dice, 6)
    tags.append(Tag(value=f"-{sum(faces)}", label=f"{dice}d6"))
    add_modifier_tag(tags, -resistance, "knockback resistance")

    total = body * multiplier - sum(faces) - resistance
    if total < 0:
        outcome, meters = KnockbackOutcome.NONE, 0
    elif total == 0:
        outcome, meters = KnockbackOutcome.KNOCKDOWN, 0
    else:
        outcome, meters = KnockbackOutcome.KNOCKBACK, total * METERS_PER_POINT

    log_debug(
        f"Knockback {body}x{multiplier} - {faces} - {resistance} = {total}",
        {"outcome": outcome.value, "meters": meters},
    )
    return KnockbackResult(faces=faces, total=total, outcome=outcome, meters=meters, tags=tags)
