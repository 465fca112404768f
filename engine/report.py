"""Plain-language wording for calculator results."""
import re

RISK_BANDS = (
    (0.05, "relatively low", "#10b981"),
    (0.20, "moderate", "#f59e0b"),
    (0.50, "significant", "#f97316"),
)
VERY_HIGH = ("very high", "#ef4444")


def risk_level(risk):
    for upper, label, _ in RISK_BANDS:
        if risk < upper:
            return label
    return VERY_HIGH[0]


def risk_colour(risk):
    for upper, _, colour in RISK_BANDS:
        if risk < upper:
            return colour
    return VERY_HIGH[1]


def format_percent(value, digits=1):
    return f"{value * 100:.{digits}f}%"


def frequency_label(per_week):
    if per_week < 7:
        return str(per_week)
    return f"{per_week} ({per_week / 7:.1f}×/day)"


def explain(result, profile=None):
    """
    Summary lines for every computed scenario, ending with the overall
    reduction achieved by the most protective one.
    """
    months = result.duration_months
    lines = [
        f"Over {months} month{'s' if months > 1 else ''} "
        f"(~{result.total_encounters} encounters):"
    ]
    for name, timeline in result.timelines.items():
        risk = timeline.final_risk
        lines.append(
            f"{timeline.label}: {format_percent(risk)} risk ({risk_level(risk)})"
        )

    best = result.best_scenario
    if best != "unprotected":
        reduction = result.relative_reduction(best)
        if best == "combined":
            lines.append(f"Combined protection reduces your cumulative risk by ~{reduction * 100:.0f}%")
        elif best == "barrier":
            lines.append(f"Condoms reduce your cumulative risk by ~{reduction * 100:.0f}%")
        else:
            lines.append(
                f"{result.timelines[best].label} reduces your cumulative risk by ~{reduction * 100:.0f}%"
            )

    for name, reason in result.omitted.items():
        lines.append(f"({name} scenario not shown: {reason})")

    if profile is not None and profile.notes:
        lines.append(f"Note: {profile.notes}")
    return lines


def unavailable_message(profile, error=None):
    if profile.verified:
        reason = error.reason if error is not None else "Required data is missing"
        return [
            "Data Unavailable",
            f"The transmission data for {profile.display_name} is not yet available "
            "for this selection. We only display numbers that have been confirmed "
            "against their original sources.",
            f"Reason: {reason}",
        ]
    reason = profile.verification_note or "Sources pending verification"
    return [
        "Data Unavailable",
        f"The transmission data for {profile.display_name} has not been verified yet. "
        "We only display numbers that have been confirmed against their original sources.",
        f"Reason: {reason}",
    ]


def citation_details(citation):
    """
    Lines describing where a number comes from: the source name with a
    "Direct quote" or "Calculated" label, the quote with its omissions shown
    as ellipses, the derivation for calculated values, and the verified date.
    """
    kind = "Calculated" if citation.derived else "Direct quote"
    quote = re.sub(r"\s*\.\.\.\s*", " … ", citation.quote).strip()
    lines = [f"{citation.name} ({kind})", f"“{quote}”"]
    if citation.derived and citation.derivation:
        lines.append("Calculation:")
        lines.extend(
            line.strip() for line in citation.derivation.splitlines() if line.strip()
        )
    lines.append(f"Last verified: {citation.verified_date or 'Unknown'}")
    return lines
