from spiral_model import (
    StairDerived, ValidationIssue, RuleKind,
    MAX_RISER_HEIGHT, MIN_RISER_HEIGHT, MIN_CLEAR_WIDTH,
    MIN_TREAD_DEPTH_WALKLINE, MIN_HEADROOM, TOLERANCE,
)
from midlanding import midlanding_note


SUGGESTIONS = {
    RuleKind.CLEAR_WIDTH_TOO_SMALL:
        "To increase Clear Width: Increase Outside Diameter or select a smaller standard Center Pole Diameter.",
    RuleKind.WALKLINE_DEPTH_TOO_SMALL:
        "To increase Walkline Depth: Increase Total Rotation or select a larger standard Center Pole Diameter.",
    RuleKind.HEADROOM_TOO_SMALL:
        "To increase Headroom: Increase Total Rotation or Outside Diameter.",
    RuleKind.RISER_HEIGHT_TOO_LARGE:
        "To fix Riser Height: Adjust Overall Height slightly (often a small change is enough).",
    RuleKind.RISER_HEIGHT_TOO_SMALL:
        "To increase small Riser Height: Decrease Overall Height or check inputs.",
}


# A value one full tolerance past a limit counts as past it
def _exceeds(value, limit):
    return value >= limit + TOLERANCE


def _falls_short(value, limit):
    return value <= limit - TOLERANCE


class IRCSpiralValidator:
    """Validator for IRC R311.7.10 spiral stair rules."""

    @staticmethod
    def check_staircase(derived: StairDerived) -> tuple[tuple[ValidationIssue, ...], bool]:
        """
        Validate a calculated spiral stair.

        Args:
            derived: Output of spiral_calc.calculate()

        Returns:
            (issues, compliant). The mid-landing note is listed first and never
            affects `compliant` on its own.
        """
        issues = []

        # The calculated flag is the single source; invalid input leaves it unset
        if derived.requires_midlanding:
            issues.append(midlanding_note(derived.overall_height))

        rh = derived.riser_height
        if _exceeds(rh, MAX_RISER_HEIGHT):
            issues.append(ValidationIssue(
                RuleKind.RISER_HEIGHT_TOO_LARGE,
                f"Riser height violation: Calculated {rh:.3f}\" (Max allowed: {MAX_RISER_HEIGHT:.2f}\" per IRC R311.7.10.1).",
            ))
        # A riser at or below tolerance means nothing was calculated
        if rh > TOLERANCE and _falls_short(rh, MIN_RISER_HEIGHT):
            issues.append(ValidationIssue(
                RuleKind.RISER_HEIGHT_TOO_SMALL,
                f"Riser height warning: Calculated {rh:.3f}\" is less than the general minimum of {MIN_RISER_HEIGHT:.0f}\".",
            ))

        if _falls_short(derived.clear_width, MIN_CLEAR_WIDTH):
            issues.append(ValidationIssue(
                RuleKind.CLEAR_WIDTH_TOO_SMALL,
                f"Clear width violation: Calculated {derived.clear_width:.3f}\" (Min required: {MIN_CLEAR_WIDTH:.2f}\" per IRC R311.7.10.1).",
            ))

        if _falls_short(derived.tread_depth_at_walkline, MIN_TREAD_DEPTH_WALKLINE):
            issues.append(ValidationIssue(
                RuleKind.WALKLINE_DEPTH_TOO_SMALL,
                f"Walkline depth violation: Calculated {derived.tread_depth_at_walkline:.3f}\" (Min required: {MIN_TREAD_DEPTH_WALKLINE:.2f}\" per IRC R311.7.10.2).",
            ))

        if derived.headroom is not None and _falls_short(derived.headroom, MIN_HEADROOM):
            issues.append(ValidationIssue(
                RuleKind.HEADROOM_TOO_SMALL,
                f"Headroom violation: Calculated {derived.headroom:.2f}\" (Min required: {MIN_HEADROOM:.2f}\" per IRC R311.7.2).",
            ))

        compliant = all(i.informational for i in issues)
        return tuple(issues), compliant

    @staticmethod
    def generate_suggestions(issues) -> str:
        """Remediation text for each violation category present, or "" if none."""
        present = {i.rule for i in issues}
        lines = [f"- {text}" for rule, text in SUGGESTIONS.items() if rule in present]
        if not lines:
            return ""
        return "Suggestions:\n" + "\n".join(lines) + "\n"
