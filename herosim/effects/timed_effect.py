"""
Timed effects.

A TimedEffect is a bounded-duration change to one characteristic (or a
status such as blind or stunned) created by a power. Effects are identified
by the power that created them and the characteristic they change, so a
second application from the same source updates the first.
"""

from pydantic import BaseModel, Field

from herosim.core.utils import signed_string


class TimedEffect(BaseModel):
    """A characteristic change or status with a duration."""

    name: str = Field(description="Display name, e.g. DRAIN -10 STR [Viper].")
    source: str = Field(description="Id of the power record that created the effect.")
    source_identifier: str = Field(
        default="",
        description="Catalog identifier of the source power, e.g. DRAIN.",
    )
    source_actor: str = Field(default="", description="Name of the character using the power.")
    characteristic: str | None = Field(
        default=None,
        description="Lower case characteristic the effect changes, if any.",
    )
    value: int = Field(default=0, description="Additive change to the characteristic.")
    affects_max: bool = Field(
        default=True,
        description="Whether the maximum moves with the current value.",
    )
    active_points: float = Field(
        default=0,
        ge=0,
        description="Active points of effect accumulated by an adjustment power.",
    )
    seconds: float | None = Field(
        default=None,
        description="Remaining duration; None lasts until removed.",
    )
    next_phase: bool = Field(
        default=False,
        description="Removed at the start of the character's next phase.",
    )
    status: str | None = Field(
        default=None,
        description="Status the effect imposes, e.g. blind, stunned or aborted.",
    )

    def model_post_init(self, _) -> None:
        assert self.source, "Timed effect source must not be empty."
        if self.characteristic:
            self.characteristic = self.characteristic.lower()

    @property
    def key(self) -> tuple[str, str | None]:
        """The (source, characteristic) pair an effect is unique on."""
        return (self.source, self.characteristic)

    @property
    def is_permanent(self) -> bool:
        return self.seconds is None and not self.next_phase

    def describe(self) -> str:
        if self.characteristic is None:
            return self.name
        return f"{signed_string(self.value)} {self.characteristic.upper()}"


def effect_name(identifier: str, value: int, characteristic: str, source_actor: str) -> str:
    """Builds the conventional name of an adjustment effect."""
    return f"{identifier} {signed_string(value)} {characteristic.upper()} [{source_actor}]"
