"""
Attack profiles and damage classes.

An AttackProfile is everything the resolution engines need to know about how
a power attacks: its class, the combat values it uses and targets, its dice,
knockback multiplier, piercing and penetrating levels, range and area. It is
derived from the power record and the catalog, never stored.
"""

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from herosim.core.constants import (
    AreaShape,
    AttackClass,
    CombatValue,
    ExtraDice,
    PowerCategory,
    RangeClass,
    RulesEdition,
    StunBodyDamage,
)
from herosim.core.dice import dice_formula
from herosim.core.error_handling import log_error
from herosim.core.tags import Tag

from .catalog import lookup
from .costs import PowerCosts, compute_costs, modifier_base_cost
from .model import PowerInstance

ADJUSTMENT_POWERS = frozenset(
    {"ABSORPTION", "AID", "SUCCOR", "DISPEL", "DRAIN", "HEALING", "SUPPRESS", "TRANSFER"}
)

# Attack class and flags of powers whose attack behavior is unique.
_CLASS_OVERRIDES: dict[str, dict[str, Any]] = {
    "ENTANGLE": {"attack_class": AttackClass.ENTANGLE, "knockback_multiplier": 0},
    "DARKNESS": {"attack_class": AttackClass.DARKNESS},
    "IMAGES": {"attack_class": AttackClass.IMAGES},
    "MINDSCAN": {"attack_class": AttackClass.MINDSCAN},
    "EGOATTACK": {
        "attack_class": AttackClass.MENTAL,
        "uses": CombatValue.OMCV,
        "targets": CombatValue.DMCV,
        "knockback_multiplier": 0,
        "stun_body": StunBodyDamage.STUN_ONLY,
    },
    "MINDCONTROL": {
        "attack_class": AttackClass.MIND_CONTROL,
        "uses": CombatValue.OMCV,
        "targets": CombatValue.DMCV,
        "knockback_multiplier": 0,
        "stun_body": StunBodyDamage.STUN_ONLY,
    },
    "TELEPATHY": {
        "attack_class": AttackClass.TELEPATHY,
        "uses": CombatValue.OMCV,
        "targets": CombatValue.DMCV,
        "knockback_multiplier": 0,
    },
    "CHANGEENVIRONMENT": {"attack_class": AttackClass.CHANGE_ENVIRONMENT},
    "FLASH": {"attack_class": AttackClass.FLASH},
}

_STRENGTH_ATTACKS = frozenset({"STR", "HKA", "HANDTOHANDATTACK", "MANEUVER"})

_AUTOFIRE_WORDS = {"TWO": 2, "THREE": 3, "FIVE": 5, "TEN": 10, "TWENTY": 20, "FIFTY": 50}

_OPTION_SHAPES: dict[str, AreaShape] = {
    "RADIUS": AreaShape.RADIUS,
    "NORMAL": AreaShape.RADIUS,
    "CONE": AreaShape.CONE,
    "LINE": AreaShape.LINE,
    "SURFACE": AreaShape.SURFACE,
    "ANY": AreaShape.ANY,
    "HEX": AreaShape.HEX,
}


class DamageClassData(BaseModel):
    """The dice an attack rolls and how its damage is read."""

    model_config = ConfigDict(frozen=True)

    dice: int = Field(default=0, ge=0, description="Whole six-sided dice.")
    extra: ExtraDice = Field(default=ExtraDice.ZERO, description="Remainder dice.")
    killing: bool = Field(default=False, description="Killing or normal damage.")
    knockback_multiplier: int = Field(default=1, ge=0, le=2, description="0, 1 or 2.")
    stun_body: StunBodyDamage = Field(
        default=StunBodyDamage.STUN_BODY,
        description="Which damage pools the attack affects.",
    )
    tags: list[Tag] = Field(default_factory=list, description="Where the dice came from.")

    @property
    def formula(self) -> str:
        return dice_formula(self.dice, self.extra)

    @property
    def damage_classes(self) -> float:
        return damage_classes_from_dice(self.dice, self.extra, self.killing)

    @property
    def maximum_effect(self) -> int:
        """Highest total the dice can show, not counting a flat pip."""
        return self.dice * 6 + (3 if self.extra == ExtraDice.HALF else 0)

    def plus_damage_classes(self, damage_classes: float, label: str) -> "DamageClassData":
        """Returns the data with damage classes added or, when negative, removed."""
        if not damage_classes:
            return self
        total = max(0, self.damage_classes + damage_classes)
        dice, extra = dice_from_damage_classes(total, self.killing)
        sign = "+" if damage_classes > 0 else ""
        tags = [*self.tags, Tag(value=f"{sign}{damage_classes:g}DC", label=label)]
        return self.model_copy(update={"dice": dice, "extra": extra, "tags": tags})


class AreaOfEffect(BaseModel):
    """The template an area attack covers."""

    model_config = ConfigDict(frozen=True)

    shape: AreaShape = Field(description="Template shape.")
    size: float = Field(ge=0, description="Radius, length or side in meters.")
    width: float = Field(default=0, ge=0, description="Width of a line.")
    height: float = Field(default=0, ge=0, description="Height of a line.")
    is_explosion: bool = Field(default=False, description="Damage falls off with distance.")
    dc_falloff: int = Field(default=0, ge=0, description="Meters per DC lost, 5e explosions.")
    selective: bool = Field(
        default=False,
        description="Selective or nonselective targeting, so each target is rolled for.",
    )

    @property
    def always_hits(self) -> bool:
        return not self.selective


class AttackProfile(BaseModel):
    """How a power attacks."""

    model_config = ConfigDict(frozen=True)

    attack_class: AttackClass = Field(default=AttackClass.PHYSICAL)
    uses: CombatValue = Field(default=CombatValue.OCV)
    targets: CombatValue = Field(default=CombatValue.DCV)
    killing: bool = Field(default=False)
    dice: int = Field(default=0, ge=0)
    extra: ExtraDice = Field(default=ExtraDice.ZERO)
    knockback_multiplier: int = Field(default=1, ge=0, le=2)
    piercing: int = Field(default=0, ge=0, description="Armor Piercing levels.")
    penetrating: int = Field(default=0, ge=0, description="Penetrating levels.")
    stun_body: StunBodyDamage = Field(default=StunBodyDamage.STUN_BODY)
    uses_strength: bool = Field(default=False)
    uses_telekinesis: bool = Field(default=False)
    no_hit_locations: bool = Field(default=False)
    input: str | None = Field(default=None, description="Declared defense input, e.g. PD.")
    range: RangeClass = Field(default=RangeClass.STANDARD)
    no_range_modifier: bool = Field(default=False)
    area: AreaOfEffect | None = Field(default=None)
    autofire_shots: int = Field(default=0, ge=0)
    tags: list[Tag] = Field(default_factory=list)

    @property
    def is_adjustment(self) -> bool:
        return self.attack_class == AttackClass.ADJUSTMENT

    @property
    def is_autofire(self) -> bool:
        return self.autofire_shots > 1

    @property
    def takes_range_penalty(self) -> bool:
        return (
            self.uses == CombatValue.OCV
            and not self.no_range_modifier
            and self.range not in (RangeClass.SELF, RangeClass.LINE_OF_SIGHT)
        )


def damage_classes_from_dice(dice: int, extra: ExtraDice, killing: bool) -> float:
    """
    Converts dice to damage classes.

    Killing attacks count 3 DC per die, 1 for a pip and 2 for a half die.
    Normal attacks count 1 DC per die, 0.2 for a pip and 0.5 for a half die.
    """
    if killing:
        remainder = {ExtraDice.PIP: 1, ExtraDice.HALF: 2, ExtraDice.ONE_PIP: 2}.get(extra, 0)
        return dice * 3 + remainder
    remainder = {ExtraDice.PIP: 0.2, ExtraDice.HALF: 0.5, ExtraDice.ONE_PIP: 0.5}.get(extra, 0)
    return dice + remainder


def dice_from_damage_classes(damage_classes: float, killing: bool) -> tuple[int, ExtraDice]:
    """
    Converts damage classes back to dice.

    Args:
        damage_classes (float): Damage classes to convert.
        killing (bool): Whether the attack is a killing attack.

    Returns:
        tuple[int, ExtraDice]: Whole dice and the remainder.

    """
    if damage_classes <= 0:
        return 0, ExtraDice.ZERO
    if killing:
        pips = int(math.floor(damage_classes + 1e-9))
        extra = {1: ExtraDice.PIP, 2: ExtraDice.HALF}.get(pips % 3, ExtraDice.ZERO)
        return pips // 3, extra
    dice = int(math.floor(damage_classes + 1e-9))
    fraction = round(damage_classes - dice, 6)
    if fraction >= 0.5:
        return dice, ExtraDice.HALF
    if fraction > 0:
        return dice, ExtraDice.PIP
    return dice, ExtraDice.ZERO


def range_class(power: PowerInstance, edition: RulesEdition) -> tuple[RangeClass, bool]:
    """
    Derives the range of a power from its default and its range modifiers.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.

    Returns:
        tuple[RangeClass, bool]: The range class and whether range modifiers are ignored.

    """
    definition = lookup(power.identifier, edition)
    current = definition.range if definition and definition.range else RangeClass.STANDARD
    no_range_modifier = False

    def has(identifier: str) -> bool:
        return power.has_modifier(identifier)

    if has("BOECV"):
        current = RangeClass.LINE_OF_SIGHT
    if current == RangeClass.SELF and has("UOO"):
        current = RangeClass.NO_RANGE
    if current == RangeClass.NO_RANGE and has("RANGED"):
        current = RangeClass.STANDARD
    if current == RangeClass.STANDARD:
        if has("NORANGE"):
            current = RangeClass.NO_RANGE
        elif has("LOS"):
            current = RangeClass.LINE_OF_SIGHT
        elif has("LIMITEDRANGE"):
            current = RangeClass.LIMITED_RANGE
        elif has("RANGEBASEDONSTR"):
            current = RangeClass.RANGE_BASED_ON_STR
        elif has("NORANGEMODIFIER"):
            no_range_modifier = True
    if current == RangeClass.LINE_OF_SIGHT:
        if has("NORMALRANGE"):
            current = RangeClass.LIMITED_RANGE
            no_range_modifier = True
        elif has("RANGEBASEDONSTR"):
            current = RangeClass.RANGE_BASED_ON_STR
        elif has("NORANGE"):
            current = RangeClass.NO_RANGE
    return current, no_range_modifier


def autofire_max_shots(power: PowerInstance) -> int:
    """
    Maximum shots an autofire power fires per attack.

    The base number comes from the modifier option; each level of the DOUBLE
    adder doubles it. Powers without autofire fire once.
    """
    autofire = power.modifier("AUTOFIRE")
    if autofire is None:
        return 1
    match = re.search(r"\d+", autofire.option_alias or "")
    if match:
        shots = int(match.group(0))
    else:
        shots = _AUTOFIRE_WORDS.get((autofire.option_id or "").upper(), 5)
    double = autofire.adder("DOUBLE")
    if double is not None:
        shots *= 2 ** double.levels
    return shots


def area_of_effect(
    power: PowerInstance,
    edition: RulesEdition,
    costs: PowerCosts,
    damage_classes: float = 0,
) -> AreaOfEffect | None:
    """
    Sizes the template of an area attack.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.
        costs (PowerCosts): The power's costs, used by 5e sizing.
        damage_classes (float): The attack's damage classes, used by 5e explosions.

    Returns:
        AreaOfEffect | None: The template, or None for single target attacks and
            unknown shapes.

    """
    modifier = power.modifier("AOE") or power.modifier("EXPLOSION")
    if modifier is None:
        return None

    shape = _OPTION_SHAPES.get((modifier.option_id or "").upper())
    if shape is None:
        log_error(
            f"Unknown area of effect shape {modifier.option_id}, treating as single target",
            {"power": power.display_name},
        )
        return None

    def adder_levels(*identifiers: str) -> int:
        for identifier in identifiers:
            adder = modifier.adder(identifier)
            if adder is not None:
                return adder.levels
        return 0

    width_levels = adder_levels("DOUBLEWIDTH")
    height_levels = adder_levels("DOUBLEHEIGHT")
    width = 2**width_levels if edition.is_5e else width_levels
    height = 2**height_levels if edition.is_5e else height_levels
    is_explosion = modifier.identifier == "EXPLOSION" or modifier.has_adder("EXPLOSION")
    dc_falloff = 0

    if not edition.is_5e:
        size = float(modifier.levels)
    elif modifier.identifier == "AOE":
        advantage = modifier_base_cost(modifier, edition) + sum(
            adder.base_cost for adder in modifier.adders
        )
        points = max(costs.base_points_plus_adders, costs.active_points / (1 + advantage))
        if shape == AreaShape.CONE:
            size = math.floor(1 + points / 5)
        elif shape == AreaShape.HEX:
            size = 1
        elif shape == AreaShape.LINE:
            size = math.floor(2 * points / 5)
        else:
            size = math.floor(1 + points / 10)
        size *= 2 ** adder_levels("DOUBLEAREA", "DOUBLELENGTH")
    else:
        default_falloff = {AreaShape.CONE: 2, AreaShape.LINE: 3}.get(shape, 1)
        dc_falloff = modifier.levels or default_falloff
        size = damage_classes * dc_falloff

    return AreaOfEffect(
        shape=shape,
        size=size,
        width=width,
        height=height,
        is_explosion=is_explosion,
        dc_falloff=dc_falloff,
        selective=modifier.has_adder("SELECTIVETARGET") or modifier.has_adder("NONSELECTIVETARGET"),
    )


def _has_anywhere(power: PowerInstance, identifier: str) -> bool:
    """Whether the power has a modifier or an adder with this identifier."""
    return power.has_modifier(identifier) or power.has_adder(identifier) or any(
        m.has_adder(identifier) for m in power.modifiers
    )


def make_attack_profile(
    power: PowerInstance,
    edition: RulesEdition,
    costs: PowerCosts | None = None,
) -> AttackProfile:
    """
    Builds the attack profile of a power.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.
        costs (PowerCosts | None): Precomputed costs, computed when omitted.

    Returns:
        AttackProfile: The profile. Powers that do not attack get a profile with no dice.

    """
    costs = costs or compute_costs(power, edition)
    definition = lookup(power.identifier, edition)
    identifier = power.identifier

    fields: dict[str, Any] = {
        "attack_class": AttackClass.ENERGY if power.input == "ED" else AttackClass.PHYSICAL,
        "input": power.input,
        "uses": CombatValue.OCV,
        "targets": CombatValue.DCV,
        "knockback_multiplier": 1,
        "stun_body": StunBodyDamage.STUN_BODY,
        "no_hit_locations": False,
    }
    if definition is not None and definition.is_mental:
        fields.update(uses=CombatValue.OMCV, targets=CombatValue.DMCV)
    if identifier in ADJUSTMENT_POWERS:
        fields.update(attack_class=AttackClass.ADJUSTMENT, no_hit_locations=True)
    if identifier in _CLASS_OVERRIDES:
        fields.update(_CLASS_OVERRIDES[identifier])
        fields["no_hit_locations"] = True

    if power.has_modifier("AVAD"):
        fields["attack_class"] = AttackClass.AVAD
        avad = power.modifier("AVAD")
        fields["input"] = avad.input if avad and avad.input else power.input

    levels = power.damage_classes if identifier == "MANEUVER" else power.levels
    dice = levels if definition is None or definition.dice or identifier == "MANEUVER" else 0
    extra = ExtraDice.ZERO
    if _has_anywhere(power, "PLUSONEPIP"):
        extra = ExtraDice.PIP
    if _has_anywhere(power, "PLUSONEHALFDIE"):
        extra = ExtraDice.HALF
    if _has_anywhere(power, "MINUSONEPIP"):
        extra = ExtraDice.ONE_PIP

    killing = bool(power.killing) or identifier in ("HKA", "RKA") or "KILLING" in power.effect.upper()
    uses_strength = identifier in _STRENGTH_ATTACKS or (
        definition is not None and definition.has(PowerCategory.MARTIAL)
    )
    effect_text = power.effect.lower()
    if "block" in effect_text or "dodge" in effect_text or "[FLASHDC]" in power.effect.upper():
        uses_strength = False
    if power.uses_strength is not None:
        uses_strength = power.uses_strength
    if power.has_modifier("NOSTRBONUS"):
        uses_strength = False

    uses_telekinesis = identifier == "TELEKINESIS"
    if uses_telekinesis:
        dice, extra = dice_from_damage_classes(levels / 5, False)
        uses_strength = False

    acv = power.modifier("ACV")
    if acv is not None and acv.option_alias:
        uses = re.search(r"uses (\w+)", acv.option_alias, re.IGNORECASE)
        against = re.search(r"against (\w+)", acv.option_alias, re.IGNORECASE)
        if uses:
            fields["uses"] = CombatValue(uses.group(1).lower())
        if against:
            fields["targets"] = CombatValue(against.group(1).lower())
    if power.has_modifier("BOECV"):
        fields.update(uses=CombatValue.OMCV, targets=CombatValue.DMCV)

    if power.has_modifier("NOKB"):
        fields["knockback_multiplier"] = 0
    if power.has_modifier("DOUBLEKB"):
        fields["knockback_multiplier"] = 2
    if power.has_modifier("STUNONLY"):
        fields["stun_body"] = StunBodyDamage.STUN_ONLY
    if power.has_modifier("DOESBODY"):
        fields["stun_body"] = StunBodyDamage.STUN_BODY

    current_range, no_range_modifier = range_class(power, edition)
    damage_classes = damage_classes_from_dice(dice, extra, killing)
    profile = AttackProfile(
        **fields,
        killing=killing,
        dice=dice,
        extra=extra,
        piercing=power.modifier_levels("ARMORPIERCING"),
        penetrating=power.modifier_levels("PENETRATING"),
        uses_strength=uses_strength,
        uses_telekinesis=uses_telekinesis,
        range=current_range,
        no_range_modifier=no_range_modifier,
        area=area_of_effect(power, edition, costs, damage_classes),
        autofire_shots=autofire_max_shots(power) if power.has_modifier("AUTOFIRE") else 0,
    )
    return profile.model_copy(update={"tags": attack_tags(power, profile)})


def damage_class_data(
    power: PowerInstance,
    profile: AttackProfile,
    strength: int = 0,
    extra_damage_classes: float = 0,
) -> DamageClassData:
    """
    The dice an attack rolls once strength and other damage class bonuses are added.

    Args:
        power (PowerInstance): The power record.
        profile (AttackProfile): The power's attack profile.
        strength (int): STR put behind the attack, or the levels of a telekinetic strike.
        extra_damage_classes (float): Damage classes from maneuvers and skill levels.

    Returns:
        DamageClassData: The dice, remainder and damage reading.

    """
    data = DamageClassData(
        dice=profile.dice,
        extra=profile.extra,
        killing=profile.killing,
        knockback_multiplier=profile.knockback_multiplier,
        stun_body=profile.stun_body,
        tags=[Tag(value=dice_formula(profile.dice, profile.extra), label=power.display_name)],
    )
    if profile.uses_strength and strength > 0:
        data = data.plus_damage_classes(math.floor(strength / 5), f"{strength} STR")
    return data.plus_damage_classes(extra_damage_classes, "extra damage classes")


def attack_tags(power: PowerInstance, profile: AttackProfile) -> list[Tag]:
    """
    Short labels describing an attack: its class, adders and modifiers.

    Args:
        power (PowerInstance): The power record.
        profile (AttackProfile): The power's attack profile.

    Returns:
        list[Tag]: One tag per notable feature.

    """
    tags = [Tag(value=profile.attack_class.value, label="attack class")]
    if profile.killing:
        tags.append(Tag(value="killing", label="killing attack"))
    for adder in power.adders:
        if adder.identifier in ("PLUSONEPIP", "PLUSONEHALFDIE", "MINUSONEPIP"):
            continue
        tags.append(Tag(value=adder.alias or adder.identifier, label="adder"))
    if power.standard_effect:
        tags.append(Tag(value="Standard Effect", label="rolls are fixed"))
    if power.identifier == "FLASH" and power.option_alias:
        tags.append(Tag(value=power.option_alias, label="sense group"))
    for modifier in power.modifiers:
        if modifier.identifier == "AUTOFIRE":
            value = f"AF{autofire_max_shots(power)}"
        elif modifier.identifier in ("AOE", "EXPLOSION"):
            value = f"{modifier.option_alias or modifier.option_id}({modifier.levels})"
        else:
            value = modifier.alias or modifier.identifier
        tags.append(Tag(value=value, label="modifier"))
        if modifier.has_adder("CONTINUOUSCONCENTRATION"):
            tags.append(Tag(value="Continuous", label="modifier adder"))
    return tags
