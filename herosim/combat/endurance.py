"""
Endurance, charges and activation rolls.

Works out what using a power costs before anything is rolled: END for the
power and for the STR behind it, END drawn from an Endurance Reserve, STUN
taken when END runs out, and charges. Requires a Roll limitations are rolled
here too. Nothing is written: the caller receives the updates and decides
which of them the automation level allows.
"""

import math
import re

from pydantic import BaseModel, Field

from herosim.character.update import CharacterUpdate
from herosim.core.config import CombatConfig
from herosim.core.constants import DEFAULT_TARGET_NUMBER, RulesEdition
from herosim.core.dice import DiceRoller
from herosim.core.error_handling import Refusal, ensure_int_in_range, ensure_non_negative_int
from herosim.core.logging import log_debug, log_warning
from herosim.core.utils import round_half_up
from herosim.powers.attack_profile import AttackProfile
from herosim.powers.costs import compute_costs, endurance_cost
from herosim.powers.model import PowerInstance

from .results import ActivationRoll, EnduranceResult

ACTIVATION_MODIFIERS = ("REQUIRESASKILLROLL", "ACTIVATIONROLL")


class EnduranceSpend(BaseModel):
    """The cost of one use of a power, with the updates that pay it."""

    result: EnduranceResult = Field(default_factory=EnduranceResult)
    characteristics: CharacterUpdate = Field(
        description="END and STUN values; written only when automation allows.",
    )
    resources: CharacterUpdate = Field(
        description="Charges and Endurance Reserve; always written.",
    )


def strength_endurance(strength: int) -> int:
    """END for the STR put behind an attack: 1 per 10 STR, at least 1."""
    if strength <= 0:
        return 0
    return max(1, round_half_up(strength / 10))


def power_endurance(
    power: PowerInstance,
    edition: RulesEdition,
    profile: AttackProfile | None = None,
    strength: int = 0,
) -> int:
    """
    END spent by one use of a power.

    Args:
        power (PowerInstance): The power used.
        edition (RulesEdition): The user's rules edition.
        profile (AttackProfile | None): The attack profile, when the power attacks.
        strength (int): STR put behind the attack.

    Returns:
        int: The power's END plus STR END for attacks that use strength.

    """
    costs = compute_costs(power, edition)
    end = endurance_cost(power, edition, costs)
    if profile is not None and (profile.uses_strength or profile.uses_telekinesis):
        end += strength_endurance(strength)
    return end


def spend_endurance(
    character,
    power: PowerInstance,
    end: int,
    roller: DiceRoller,
    config: CombatConfig,
    shots: int = 1,
) -> EnduranceSpend | Refusal:
    """
    Plans paying for one use of a power.

    Charges are checked first, then the Endurance Reserve. A character short
    of END pays 1d6 STUN per 2 END (or fraction) below zero and ends at 0 END.

    Args:
        character (Character): The character using the power.
        power (PowerInstance): The power used.
        end (int): END to spend.
        roller (DiceRoller): Source for the STUN dice.
        config (CombatConfig): Whether END is tracked at all.
        shots (int): Charges to spend, one per autofire shot.

    Returns:
        EnduranceSpend | Refusal: The spend, or a refusal when the power cannot be paid for.

    """
    end = ensure_non_negative_int(end, "END", 0, {"power": power.id})
    shots = ensure_int_in_range(shots, "shots", 1, context={"power": power.id})
    characteristics = CharacterUpdate(character_id=character.id)
    resources = CharacterUpdate(character_id=character.id)
    texts: list[str] = []
    spent_charges = 0

    if power.charges is not None and power.charges.max > 0:
        if power.charges.value <= 0:
            return Refusal(
                reason=f"{power.display_name} has no more charges.",
                context={"character": character.id, "power": power.id},
            )
        spent_charges = min(shots, power.charges.value)
        resources.charges[power.id] = power.charges.value - spent_charges

    result = EnduranceResult(charges=spent_charges)
    if config.use_endurance and end > 0:
        reserve = character.endurance_reserve if power.use_end_reserve else None
        if power.use_end_reserve and reserve is None:
            log_warning(
                f"{power.display_name} uses an Endurance Reserve {character.name} does not have",
                {"character": character.id},
            )
        if reserve is not None:
            if end > reserve.value:
                return Refusal(
                    reason=(
                        f"{power.display_name} needs {end} END, "
                        f"but {character.name}'s Endurance Reserve only has {reserve.value} END."
                    ),
                    context={"character": character.id, "power": power.id},
                )
            resources.endurance_reserve = reserve.value - end
            result = result.model_copy(update={"end": end, "from_reserve": True})
            texts.append(f"Spent {end} END from Endurance Reserve ({reserve.value - end}/{reserve.max})")
        else:
            current = character.value("end")
            remaining = current - end
            if remaining < 0:
                faces = roller.roll(math.ceil(abs(remaining) / 2), 6)
                stun = sum(faces)
                characteristics.values["end"] = 0
                characteristics.values["stun"] = character.value("stun") - stun
                result = result.model_copy(update={"end": max(0, current), "stun": stun, "stun_faces": faces})
                texts.append(f"Spent {max(0, current)} END and {stun} STUN")
                log_warning(f"{character.name} used STUN for ENDURANCE", {"stun": stun})
            else:
                characteristics.values["end"] = remaining
                result = result.model_copy(update={"end": end})
                texts.append(f"Spent {end} END")

    if spent_charges:
        plural = "charge" if spent_charges == 1 else "charges"
        texts.append(f"{spent_charges} {plural}" if texts else f"Spent {spent_charges} {plural}")

    result = result.model_copy(update={"text": " and ".join(texts)})
    log_debug(f"{character.name} pays for {power.display_name}: {result.text}", {"end": end})
    return EnduranceSpend(result=result, characteristics=characteristics, resources=resources)


def activation_target(power: PowerInstance) -> int | None:
    """
    The roll a Requires a Roll or Activation Roll limitation needs.

    Args:
        power (PowerInstance): The power.

    Returns:
        int | None: The 3d6 target, or None when the power rolls for nothing.

    """
    for modifier in power.all_modifiers():
        if modifier.identifier not in ACTIVATION_MODIFIERS:
            continue
        match = re.search(r"\d+", modifier.option_id or modifier.option_alias or "")
        return int(match.group(0)) if match else DEFAULT_TARGET_NUMBER
    return None


def roll_activation(power: PowerInstance, roller: DiceRoller) -> ActivationRoll | None:
    """Rolls a power's activation check, or returns None when it needs none."""
    target = activation_target(power)
    if target is None:
        return None
    roll = ActivationRoll(target=target, faces=roller.roll_3d6())
    log_debug(
        f"{power.display_name} activation {roll.total} vs {target}",
        {"success": roll.success},
    )
    return roll
