"""
Defense determination.

Works out which of a defender's defenses apply against an incoming attack
and sums them into a DefenseProfile: normal and resistant defense,
impenetrable value, damage reduction, damage negation, knockback resistance
and Flash Defense. Conditional defenses, and every defense against an AVAD
attack, are offered as options; the caller passes back the ones to ignore.
"""

import re

from pydantic import BaseModel, Field

from herosim.core.constants import AttackClass, PowerCategory
from herosim.core.logging import log_debug
from herosim.core.tags import Tag
from herosim.powers.attack_profile import AttackProfile
from herosim.powers.model import PowerInstance

CONDITIONAL_MODIFIERS = ("ONLYAGAINSTLIMITEDTYPE", "CONDITIONALPOWER")

# Which defense a class of attack is resisted by.
_DEFENSE_KIND: dict[AttackClass, str] = {
    AttackClass.PHYSICAL: "PD",
    AttackClass.ENERGY: "ED",
    AttackClass.MENTAL: "MD",
    AttackClass.MIND_CONTROL: "MD",
    AttackClass.TELEPATHY: "MD",
    AttackClass.MINDSCAN: "MD",
    AttackClass.ADJUSTMENT: "POWD",
    AttackClass.FLASH: "FLASH",
}

# Adder carrying each kind of defense on Resistant Protection style powers.
_LEVEL_ADDERS = {"PD": "PDLEVELS", "ED": "EDLEVELS", "MD": "MDLEVELS", "POWD": "POWDLEVELS"}

# Damage Reduction and Damage Negation name their kind by input or adder.
_KIND_INPUTS = {"PD": "PHYSICAL", "ED": "ENERGY", "MD": "MENTAL"}

# Powers that are themselves a kind of defense.
_DEFENSE_POWERS = {
    "MENTALDEFENSE": "MD",
    "POWERDEFENSE": "POWD",
    "FLASHDEFENSE": "FLASH",
}


class DefenseProfile(BaseModel):
    """Defenses that apply against one attack."""

    defense: int = Field(default=0, ge=0, description="Normal defense.")
    resistant: int = Field(default=0, ge=0, description="Resistant defense.")
    impenetrable: int = Field(default=0, ge=0, description="Impenetrable value.")
    damage_reduction: int = Field(default=0, ge=0, le=100, description="Damage reduction percent.")
    damage_negation: int = Field(default=0, ge=0, description="Damage classes negated.")
    knockback_resistance: int = Field(default=0, ge=0, description="Subtracted from the knockback roll.")
    flash_defense: int = Field(default=0, ge=0)
    ignored: list[str] = Field(default_factory=list, description="Ids of defenses that were not applied.")
    matched: list[str] = Field(
        default_factory=list,
        description="Ids of defenses matching an AVAD attack, including Life Support.",
    )
    tags: list[Tag] = Field(default_factory=list)

    @property
    def total(self) -> int:
        """Every defense value added together, 0 when nothing applies."""
        return (
            self.defense
            + self.resistant
            + self.impenetrable
            + self.damage_reduction
            + self.damage_negation
            + self.knockback_resistance
        )

    @property
    def text(self) -> str:
        text = ""
        if self.damage_negation:
            text += f"Damage Negation {self.damage_negation}DC(s); "
        text += f"{self.defense} normal; {self.resistant} resistant"
        if self.damage_reduction:
            text += f"; damage reduction {self.damage_reduction}%"
        return text


class DefenseOption(BaseModel):
    """A defense the user may choose not to apply."""

    power_id: str
    name: str
    checked: bool = Field(description="Pre-selected as applying.")


def defense_kind(profile: AttackProfile) -> str | None:
    """
    The kind of defense an attack is resisted by.

    Args:
        profile (AttackProfile): The attack.

    Returns:
        str | None: PD, ED, MD, POWD or FLASH; the AVAD input for AVAD attacks;
            None when no defense applies.

    """
    if profile.attack_class == AttackClass.AVAD:
        return profile.input
    return _DEFENSE_KIND.get(profile.attack_class)


def _normalize_kind(text: str) -> str:
    upper = text.upper().replace("MENTAL DEFENSE", "MD")
    if re.search(r"POWER", upper):
        return "POWD"
    if re.search(r"FLASH", upper):
        return "FLASH"
    if re.search(r"LIFE", upper):
        return "LIFE"
    for kind in ("PD", "ED", "MD"):
        if re.search(rf"\b{kind}\b", upper):
            return kind
    return upper


def avad_matches(avad_input: str, defense: PowerInstance) -> bool:
    """
    Whether a defense power textually matches an AVAD attack's stated defense.

    Args:
        avad_input (str): The AVAD input, e.g. "ED", "Resistant PD" or "Power Defense".
        defense (PowerInstance): A defense power of the defender.

    Returns:
        bool: True when the defense is the one the attack works against.

    """
    kind = _normalize_kind(avad_input)
    resistant_only = "RESISTANT" in avad_input.upper()
    identifier = defense.identifier
    option = (defense.option_id or "").upper()
    defense_input = (defense.input or "").upper()

    if kind in ("PD", "ED", "MD") and identifier == kind and not resistant_only:
        return True
    if identifier == "DAMAGEREDUCTION" and defense_input == _KIND_INPUTS.get(kind):
        return not resistant_only or "RESISTANT" in option
    if identifier == "DAMAGENEGATION" and defense.has_adder(_KIND_INPUTS.get(kind, "")):
        return True
    if kind == "FLASH" and identifier == "FLASHDEFENSE":
        return True
    if kind == "POWD" and identifier == "POWERDEFENSE":
        return True
    if kind == "LIFE" and identifier == "LIFESUPPORT":
        return True
    adder = defense.adder(_LEVEL_ADDERS.get(kind, ""))
    return adder is not None and adder.levels > 0


def _defense_powers(defender) -> list[PowerInstance]:
    powers = defender.powers_in(PowerCategory.DEFENSE)
    return [p for p in powers if p.identifier not in ("PD", "ED") or p.has_modifier("RESISTANT")]


def conditional_defense_options(defender, profile: AttackProfile) -> list[DefenseOption]:
    """
    Defenses that need a user decision before damage is applied.

    Conditional defenses (Only Against Limited Type, Conditional Power) are
    pre-selected. Against an AVAD attack every defense and Life Support is
    offered, pre-selected only when it matches the attack's stated defense.

    Args:
        defender (Character): The defending character.
        profile (AttackProfile): The incoming attack.

    Returns:
        list[DefenseOption]: The options, empty when no decision is needed.

    """
    avad = profile.attack_class == AttackClass.AVAD
    candidates = [
        p
        for p in _defense_powers(defender)
        if avad or p.has_modifier(*CONDITIONAL_MODIFIERS)
    ]
    if avad:
        candidates.extend(defender.find_powers("LIFESUPPORT"))
    options = []
    for power in candidates:
        checked = avad_matches(profile.input or "", power) if avad else True
        options.append(DefenseOption(power_id=power.id, name=power.display_name, checked=checked))
    return options


def _kind_levels(power: PowerInstance, kind: str) -> int:
    """Defense of one kind a defense power provides."""
    if _DEFENSE_POWERS.get(power.identifier) == kind:
        return power.levels
    if power.identifier == kind:
        return power.levels
    adder = power.adder(_LEVEL_ADDERS.get(kind, ""))
    return adder.levels if adder else 0


def _pierced(value: int, power: PowerInstance | None, piercing: int) -> int:
    """Halves a defense once per Armor Piercing level it is not Hardened against."""
    hardened = power.modifier_levels("HARDENED") if power is not None else 0
    for _ in range(max(0, piercing - hardened)):
        value //= 2
    return value


def determine_defenses(
    defender,
    profile: AttackProfile,
    ignore_defense_ids: frozenset[str] | set[str] = frozenset(),
) -> DefenseProfile:
    """
    Sums the defenses a defender applies against an attack.

    Args:
        defender (Character): The defending character.
        profile (AttackProfile): The incoming attack.
        ignore_defense_ids (set[str]): Ids of defense powers declared as not applying.

    Returns:
        DefenseProfile: The defenses that apply.

    """
    kind = defense_kind(profile)
    avad = profile.attack_class == AttackClass.AVAD
    if avad and kind:
        kind = _normalize_kind(kind)
    tags: list[Tag] = []
    ignored: list[str] = []
    matched: list[str] = []
    defense = resistant = impenetrable = reduction = negation = knockback = flash = 0

    if kind in ("PD", "ED") and not (avad and "RESISTANT" in (profile.input or "").upper()):
        value = _pierced(defender.value(kind.lower()), None, profile.piercing)
        if value:
            defense += value
            tags.append(Tag(value=str(value), label=f"{kind} characteristic"))
            if avad:
                matched.append(kind.lower())

    for power in _defense_powers(defender):
        if power.id in ignore_defense_ids:
            ignored.append(power.id)
            continue
        if avad:
            if not avad_matches(profile.input or "", power):
                continue
            matched.append(power.id)
        identifier = power.identifier

        if identifier == "KBRESISTANCE":
            knockback += power.levels
            continue
        if identifier == "FLASHDEFENSE":
            flash += power.levels
            if kind == "FLASH":
                tags.append(Tag(value=str(power.levels), label=power.display_name))
            continue
        if kind is None:
            continue
        if identifier == "DAMAGEREDUCTION":
            if (power.input or "").upper() == _KIND_INPUTS.get(kind):
                match = re.search(r"\d+", power.option_id or "")
                percent = int(match.group(0)) if match else 0
                if percent > reduction:
                    reduction = percent
                    tags.append(Tag(value=f"{percent}%", label=power.display_name))
            continue
        if identifier == "DAMAGENEGATION":
            adder = power.adder(_KIND_INPUTS.get(kind, ""))
            if adder is not None and adder.levels:
                negation += adder.levels
                tags.append(Tag(value=f"{adder.levels}DC", label=power.display_name))
            continue
        if identifier == "DAMAGERESISTANCE":
            converted = min(_kind_levels(power, kind), defense)
            defense -= converted
            resistant += converted
            continue

        value = _pierced(_kind_levels(power, kind), power, profile.piercing)
        if not value:
            continue
        # Separate defense powers (MD, Power Defense) are normal defense.
        is_resistant = identifier not in _DEFENSE_POWERS or power.has_modifier("RESISTANT")
        if is_resistant:
            resistant += value
        else:
            defense += value
        if power.has_modifier("IMPENETRABLE"):
            impenetrable += value
        tags.append(Tag(value=str(value), label=power.display_name))

    if kind == "FLASH":
        defense += flash
    if avad and kind == "LIFE":
        for power in defender.find_powers("LIFESUPPORT"):
            if power.id in ignore_defense_ids:
                ignored.append(power.id)
            else:
                matched.append(power.id)

    profile_out = DefenseProfile(
        defense=max(0, defense),
        resistant=max(0, resistant),
        impenetrable=max(0, impenetrable),
        damage_reduction=min(100, reduction),
        damage_negation=negation,
        knockback_resistance=knockback,
        flash_defense=flash,
        ignored=ignored,
        matched=matched,
        tags=tags,
    )
    log_debug(
        f"Defenses of {defender.name}: {profile_out.text}",
        {"kind": kind, "ignored": len(ignored)},
    )
    return profile_out
