import io
import csv
from datetime import datetime


def _fmt_headroom(derived):
    return f"{derived.headroom:.2f}" if derived.headroom is not None else "N/A"


def _midlanding_tread_number(derived):
    # Shown 1-based, stored 0-based
    index = derived.midlanding_position_index
    return str(index + 1) if index is not None else "N/A"


def compliance_issues(issues):
    """Issues that count against compliance (drops the mid-landing note)."""
    return [i for i in issues if not i.informational]


def format_report_text(derived, issues, layout=None, timestamp=None):
    """
    Render a plain-text generation report.

    Args:
        derived: StairDerived from spiral_calc.calculate()
        issues: ValidationIssue sequence from IRCSpiralValidator.check_staircase()
        layout: optional StairLayout; adds the final connect angle when given
        timestamp: optional datetime, defaults to now

    Returns:
        str: the report, one item per line.
    """
    stair_input = derived.stair_input
    timestamp = timestamp or datetime.now()
    lines = [
        "Spiral Stair Generation Report",
        "==============================",
        f"Timestamp: {timestamp:%Y-%m-%d %H:%M:%S}",
        "",
        "--- Inputs ---",
        f"Center Pole Diameter: {stair_input.center_pole_diameter:.3f}\"",
        f"Overall Height (FF-FF): {stair_input.overall_height:.3f}\"",
        f"Outside Diameter: {stair_input.outside_diameter:.3f}\"",
        f"Total Rotation: {stair_input.total_rotation:.1f}°",
        f"Handedness: {stair_input.handedness}",
        "",
        "--- Calculated Values ---",
        f"Riser Height: {derived.riser_height:.3f}\"",
        f"Number of Risers: {derived.number_of_risers}",
        f"Number of Treads: {derived.number_of_treads}",
        f"Tread Angle: {derived.tread_angle_degrees:.2f}°",
        f"Clear Width: {derived.clear_width:.3f}\"",
        f"Walkline Radius: {derived.walkline_radius:.3f}\"",
        f"Tread Depth @ Walkline: {derived.tread_depth_at_walkline:.3f}\"",
        "Calculated Headroom: " + (f"{derived.headroom:.2f}\"" if derived.headroom is not None else "N/A"),
        f"Midlanding Required: {'Yes' if derived.requires_midlanding else 'No'}",
    ]
    if derived.requires_midlanding:
        lines.append(f"Midlanding Position: Replaces Tread #{_midlanding_tread_number(derived)}")
    lines.append(f"Top Landing Width: {derived.top_landing_width:.3f}\"")
    lines.append(f"Top Landing Length: {derived.top_landing_length:.3f}\"")
    if layout is not None:
        lines.append(f"Top Landing Connect Angle: {layout.top_landing.connect_angle_degrees:.2f}°")

    lines += ["", "--- Compliance Status ---"]
    for err in derived.input_errors:
        lines.append(f"Input error: {err}")

    violations = compliance_issues(issues)
    if violations:
        lines.append("Status: Generated with Code Violations/Warnings")
        lines.extend(f"- {i.message}" for i in violations)
    else:
        lines.append("Status: Code Compliant (Based on checks performed)")

    if derived.requires_midlanding:
        lines.append("Note: Midlanding was required and generated as selected.")
    if layout is not None:
        lines.extend(f"Note: {d}" for d in layout.diagnostics)

    return "\n".join(lines) + "\n"


def generate_csv(derived, issues=()):
    """
    Dimensional stats as a Parameter,Value,Units CSV.

    Returns:
        str: A formatted CSV string.
    """
    stair_input = derived.stair_input
    rows = [
        ("Center Pole Diameter", stair_input.center_pole_diameter, "inches"),
        ("Overall Height", stair_input.overall_height, "inches"),
        ("Outside Diameter", stair_input.outside_diameter, "inches"),
        ("Total Rotation", stair_input.total_rotation, "degrees"),
        ("Handedness", stair_input.handedness, ""),
        ("Riser Height", f"{derived.riser_height:.4f}", "inches"),
        ("Number of Risers", derived.number_of_risers, ""),
        ("Number of Treads", derived.number_of_treads, ""),
        ("Tread Angle", f"{derived.tread_angle_degrees:.4f}", "degrees"),
        ("Clear Width", f"{derived.clear_width:.4f}", "inches"),
        ("Walkline Radius", f"{derived.walkline_radius:.4f}", "inches"),
        ("Tread Depth @ Walkline", f"{derived.tread_depth_at_walkline:.4f}", "inches"),
        ("Headroom", _fmt_headroom(derived), "inches"),
        ("Midlanding Required", "Yes" if derived.requires_midlanding else "No", ""),
    ]
    if derived.requires_midlanding:
        index = derived.midlanding_position_index
        rows.append(("Midlanding Position (0-based)", "" if index is None else index, ""))
        rows.append(("Midlanding Position (Replaces Tread #)", _midlanding_tread_number(derived), ""))
    rows += [
        ("Top Landing Width", f"{derived.top_landing_width:.4f}", "inches"),
        ("Top Landing Length", f"{derived.top_landing_length:.4f}", "inches"),
        ("Code Compliant", "Yes" if not compliance_issues(issues) else "No", ""),
    ]
    for issue in issues:
        rows.append((f"Issue: {issue.rule.value}", issue.message, ""))

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Parameter", "Value", "Units"])
    writer.writerows(rows)
    return output.getvalue()
