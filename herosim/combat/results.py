"""
Resolution results.

Structured values handed to the presentation layer: to-hit results per
target, damage details, knockback, adjustment and sense-affecting outcomes.
Every result carries the audit tags that explain its numbers and the
character updates it produced, split into those written automatically and
those left pending for manual application.
"""

from pydantic import BaseModel, Field

from herosim.character.update import CharacterUpdate
from herosim.core.constants import AttackState, CombatValue, KnockbackOutcome
from herosim.core.dice import DiceRoll
from herosim.core.tags import Tag
from herosim.effects.timed_effect import TimedEffect

from .defense import DefenseProfile


class EnduranceResult(BaseModel):
    """END, STUN and charges spent to use a power."""

    end: int = Field(default=0, ge=0, description="END spent.")
    stun: int = Field(default=0, ge=0, description="STUN taken for END spent below zero.")
    stun_faces: list[int] = Field(default_factory=list, description="Faces of the STUN roll.")
    from_reserve: bool = Field(default=False, description="Paid from an Endurance Reserve.")
    charges: int = Field(default=0, ge=0, description="Charges spent.")
    text: str = Field(default="", description="Summary, e.g. Spent 4 END and 1 charge.")


class ActivationRoll(BaseModel):
    """A Requires a Roll or Activation Roll check."""

    target: int = Field(description="Roll needed on 3d6.")
    faces: list[int] = Field(default_factory=list, description="The 3d6 faces.")

    @property
    def total(self) -> int:
        return sum(self.faces)

    @property
    def success(self) -> bool:
        return self.total <= self.target


class TargetHit(BaseModel):
    """The outcome of one roll against one target."""

    target_id: str = Field(description="The target character.")
    name: str = Field(default="", description="The target's name.")
    defends_with: CombatValue = Field(default=CombatValue.DCV)
    value: int = Field(default=0, description="The target's combat value.")
    roll_value: int = Field(default=0, description="The combat value this roll hits.")
    hit: bool = Field(default=False)
    by: int = Field(default=0, description="Margin: the combat value hit less the target's.")
    shot: int = Field(default=0, ge=0, description="Autofire shot number, 0 for the first.")
    distance: float = Field(default=0, ge=0, description="Meters from the attacker.")
    text: str = Field(default="", description="Override for the margin text, e.g. explosion distance.")
    tags: list[Tag] = Field(default_factory=list, description="Modifiers that applied only to this target.")

    @property
    def by_text(self) -> str:
        if self.text:
            return self.text
        return f"+{self.by}" if self.by >= 0 else str(self.by)


class AoeOrigin(BaseModel):
    """The roll placing an area template in open space."""

    target_number: int = Field(ge=0, description="3 beyond the free distance, otherwise 0.")
    hit: bool = Field(description="Whether the template lands where it was placed.")
    miss_by: int = Field(default=0, ge=0)
    displacement: int = Field(default=0, ge=0, description="How far the template moves on a miss.")
    direction: int = Field(default=0, ge=0, le=6, description="1d6 direction of the displacement.")
    text: str = Field(default="")


class ToHitResult(BaseModel):
    """The outcome of a declared attack up to the damage roll."""

    attacker_id: str
    power_id: str
    state: AttackState = Field(default=AttackState.DECLARED)
    faces: list[int] = Field(default_factory=list, description="The 3d6 to-hit faces.")
    roll_value: int = Field(default=0, description="11 + combat value + modifiers - 3d6.")
    uses: CombatValue = Field(default=CombatValue.OCV)
    targets: CombatValue = Field(default=CombatValue.DCV)
    text: str = Field(default="", description="e.g. Hits a DCV of 7.")
    hits: list[TargetHit] = Field(default_factory=list)
    always_hits: bool = Field(default=False, description="An area attack that needs no roll per target.")
    aoe_origin: AoeOrigin | None = Field(default=None)
    activation: ActivationRoll | None = Field(default=None)
    endurance: EnduranceResult = Field(default_factory=EnduranceResult)
    shots_fired: int = Field(default=0, ge=0)
    hit_location: str | None = Field(default=None, description="Location aimed at.")
    tags: list[Tag] = Field(default_factory=list, description="Modifiers that applied to the roll.")
    attack_tags: list[Tag] = Field(default_factory=list, description="Features of the attack.")
    written: list[CharacterUpdate] = Field(default_factory=list)
    pending: list[CharacterUpdate] = Field(default_factory=list)

    @property
    def target_ids(self) -> list[str]:
        """Targets hit at least once, in resolution order."""
        seen: list[str] = []
        for hit in self.hits:
            if hit.hit and hit.target_id not in seen:
                seen.append(hit.target_id)
        return seen

    @property
    def is_hit(self) -> bool:
        return self.state == AttackState.HIT


class KnockbackResult(BaseModel):
    """The outcome of a knockback roll."""

    faces: list[int] = Field(default_factory=list, description="The dice subtracted.")
    total: int = Field(default=0, description="BODY x multiplier - dice - resistance.")
    outcome: KnockbackOutcome = Field(default=KnockbackOutcome.NONE)
    meters: int = Field(default=0, ge=0)
    tags: list[Tag] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.outcome == KnockbackOutcome.KNOCKBACK:
            return f"Knocked back {self.meters}m"
        if self.outcome == KnockbackOutcome.KNOCKDOWN:
            return "inflicts Knockdown"
        return "No knockback"


class DamageResult(BaseModel):
    """Damage taken by one target from one hit."""

    target_id: str
    roll: DiceRoll = Field(description="The dice as applied to this target.")
    body_rolled: int = Field(default=0, description="BODY before defenses.")
    stun_rolled: int = Field(default=0, description="STUN before defenses.")
    counted_body: int = Field(default=0)
    penetrating_body: int = Field(default=0, ge=0)
    stun_multiplier: float = Field(default=1)
    stun_multiplier_faces: list[int] = Field(default_factory=list)
    hit_location: str | None = Field(default=None)
    hit_location_text: str = Field(default="")
    body: int = Field(default=0, ge=0, description="BODY taken.")
    stun: int = Field(default=0, ge=0, description="STUN taken.")
    effects: list[str] = Field(default_factory=list, description="e.g. minimum damage invoked.")
    stunned: bool = Field(default=False)
    knockback: KnockbackResult | None = Field(default=None)
    defense: DefenseProfile = Field(default_factory=DefenseProfile)
    tags: list[Tag] = Field(default_factory=list)
    written: list[CharacterUpdate] = Field(default_factory=list)
    pending: list[CharacterUpdate] = Field(default_factory=list)

    @property
    def effects_text(self) -> str:
        return "; ".join(self.effects)


class AdjustmentResult(BaseModel):
    """Characteristic changes made by an adjustment power."""

    target_id: str
    active_points: float = Field(default=0, ge=0, description="Active points of effect after Power Defense.")
    characteristics: list[str] = Field(default_factory=list, description="Characteristics adjusted.")
    levels: dict[str, int] = Field(default_factory=dict, description="Signed change per characteristic.")
    enhanced: dict[str, int] = Field(
        default_factory=dict,
        description="Levels a TRANSFER adds to its user, per characteristic.",
    )
    effects: list[TimedEffect] = Field(default_factory=list)
    defense: DefenseProfile = Field(default_factory=DefenseProfile)
    tags: list[Tag] = Field(default_factory=list)
    written: list[CharacterUpdate] = Field(default_factory=list)
    pending: list[CharacterUpdate] = Field(default_factory=list)


class SenseAffectingResult(BaseModel):
    """Segments of blindness inflicted by a sense-affecting power."""

    target_id: str
    body: int = Field(default=0, ge=0, description="Counted BODY after Flash Defense.")
    flash_defense: int = Field(default=0, ge=0)
    effect: TimedEffect | None = Field(default=None)
    tags: list[Tag] = Field(default_factory=list)
    written: list[CharacterUpdate] = Field(default_factory=list)
    pending: list[CharacterUpdate] = Field(default_factory=list)


class ToggleResult(BaseModel):
    """A power switched on or off."""

    character_id: str
    power_id: str
    active: bool = Field(description="Whether the power is on afterwards.")
    activation: ActivationRoll | None = Field(default=None)
    endurance: EnduranceResult = Field(default_factory=EnduranceResult)
    text: str = Field(default="")
    written: list[CharacterUpdate] = Field(default_factory=list)
    pending: list[CharacterUpdate] = Field(default_factory=list)
