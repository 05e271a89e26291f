"""
Audit tags.

Every result carries a list of (value, label) tags explaining each number
that contributed to it, for display by the presentation layer.
"""

from pydantic import BaseModel, ConfigDict, Field

from .utils import signed_string


class Tag(BaseModel):
    """One contribution to a roll or a result."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(description="The contribution, e.g. +2, -4 or 3d6.")
    label: str = Field(description="Where the contribution came from.")

    def __str__(self) -> str:
        return f"{self.value} {self.label}"


def add_modifier_tag(tags: list[Tag], value: float, label: str) -> None:
    """
    Records a signed modifier, skipping zero contributions.

    Zero modifiers are left off the trail but still count toward the roll.
    """
    if value:
        tags.append(Tag(value=signed_string(value), label=label))
