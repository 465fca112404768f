
# engine/intervention.py

from engine.profiles import ACTOR_GROUP_ORDER, ActorRole


def _clamp(value):
    return min(max(float(value), 0.0), 1.0)


def net_effectiveness(effectivenesses) -> float:
    """
    Combine independent protections multiplicatively over residual risk:
    1 - prod(1 - e_i). Returns 0 for no protections and exactly 1 as soon
    as any single protection is complete.
    """
    residual = 1.0
    for e in effectivenesses:
        e = _clamp(e)
        if e >= 1.0:
            return 1.0
        residual *= 1.0 - e
    return 1.0 - residual


def adjusted_risk(base_rate: float, effectiveness: float) -> float:
    """Per-act risk left after a protection of the given net effectiveness."""
    return _clamp(base_rate) * (1.0 - _clamp(effectiveness))


def compute_protection(base_rate, barrier_effectiveness, intervention_effectivenesses):
    """
    Per-act rates for every protection combination.
    Returns (rates, cascade) in the same shape the calculator reports:
    barrier-dependent entries are None when no barrier value is given.
    """
    combined = net_effectiveness(intervention_effectivenesses)
    has_interventions = len(intervention_effectivenesses) > 0
    has_barrier = barrier_effectiveness is not None

    rates = {
        "unprotected": adjusted_risk(base_rate, 0.0),
        "barrier": adjusted_risk(base_rate, barrier_effectiveness) if has_barrier else None,
        "intervention": adjusted_risk(base_rate, combined) if has_interventions else None,
        "combined": (
            adjusted_risk(
                base_rate,
                net_effectiveness([barrier_effectiveness, *intervention_effectivenesses]),
            )
            if has_barrier and has_interventions
            else None
        ),
    }

    cascade = {
        "base_rate": base_rate,
        "barrier_effectiveness": barrier_effectiveness,
        "intervention_effectiveness": combined,
        "residual_after_interventions": 1.0 - combined,
        "combined_effectiveness": (
            net_effectiveness([barrier_effectiveness, combined]) if has_barrier else combined
        ),
    }
    return rates, cascade


def group_interventions(profile):
    """
    Interventions keyed by actor role, in display order. Roles with no
    interventions are left out.
    """
    groups = {}
    for role in ACTOR_GROUP_ORDER:
        items = [i for i in profile.interventions if i.actor_role is role]
        if items:
            groups[role] = items
    return groups


def default_selection(profile):
    """First option of every actor-role group, as the calculator preselects."""
    return tuple(items[0] for items in group_interventions(profile).values())


def select_interventions(profile, intervention_ids):
    """
    Look up interventions by id, allowing at most one per actor role.
    Empty or None ids mean "no selection" for that slot.
    """
    chosen = {}
    for intervention_id in intervention_ids:
        if not intervention_id:
            continue
        item = profile.intervention(intervention_id)
        role = ActorRole(item.actor_role)
        if role in chosen and chosen[role].id != item.id:
            raise ValueError(
                f"Only one {role.value} intervention may be selected "
                f"({chosen[role].id!r} and {item.id!r})"
            )
        chosen[role] = item
    return tuple(chosen[r] for r in ACTOR_GROUP_ORDER if r in chosen)


def intervention_label(interventions, default="Preventatives"):
    if not interventions:
        return default
    return " + ".join(i.short_name for i in interventions)
