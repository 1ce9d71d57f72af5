"""Mid-landing policy.

A spiral stair whose floor-to-floor rise exceeds MAX_VERTICAL_RISE_NO_LANDING
needs an intermediate landing (IRC R311.7.3). The policy only flags the
requirement; the caller picks which tread the landing replaces.
"""
from dataclasses import replace
from typing import Optional

from spiral_model import (
    StairDerived, ValidationIssue, RuleKind,
    MAX_VERTICAL_RISE_NO_LANDING, TOLERANCE,
)


class MidlandingSelectionError(ValueError):
    """A required mid-landing has no valid tread index."""


def is_required(overall_height: float) -> bool:
    # Reaching the limit plus tolerance counts as over it
    return overall_height >= MAX_VERTICAL_RISE_NO_LANDING + TOLERANCE


def midlanding_issue(overall_height: float) -> Optional[ValidationIssue]:
    """Informational issue for a stair that needs a mid-landing, else None."""
    if not is_required(overall_height):
        return None
    return midlanding_note(overall_height)


def midlanding_note(overall_height: float) -> ValidationIssue:
    return ValidationIssue(
        RuleKind.MIDLANDING_REQUIRED,
        f"Midlanding Required: Overall height ({overall_height:.2f}\") exceeds max vertical "
        f"rise ({MAX_VERTICAL_RISE_NO_LANDING:.2f}\") allowed between landings/floors (IRC R311.7.3).",
    )


def check_selection(derived: StairDerived) -> None:
    """Raise MidlandingSelectionError unless the stored selection is usable."""
    if not derived.requires_midlanding:
        return
    index = derived.midlanding_position_index
    if index is None:
        raise MidlandingSelectionError(
            f"Midlanding required for {derived.overall_height:.2f}\" rise but no tread index "
            f"was supplied (expected 0..{derived.number_of_treads - 1})"
        )
    if isinstance(index, bool) or not isinstance(index, int):
        raise MidlandingSelectionError(f"Midlanding index must be an integer, got {index!r}")
    if not 0 <= index < derived.number_of_treads:
        raise MidlandingSelectionError(
            f"Midlanding index {index} out of range 0..{derived.number_of_treads - 1}"
        )


def select_midlanding(derived: StairDerived, index: Optional[int]) -> StairDerived:
    """Return a copy of derived with the mid-landing placed at tread `index`.

    The index is 0-based. On a stair that does not need a mid-landing the
    index is ignored and the record is returned unchanged.
    """
    if not derived.requires_midlanding:
        if index is not None:
            print(f"[Midlanding] Not required; ignoring index {index}")
        return derived
    selected = replace(derived, midlanding_position_index=index)
    check_selection(selected)
    print(f"[Midlanding] Replacing tread #{index + 1} (index {index}) with a mid-landing")
    return selected
