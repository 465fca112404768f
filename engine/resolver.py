"""
Parameter resolver: turn an (infection profile, direction, selection) into
the plain numbers the composition engine consumes.

Nothing here invents a number. A missing or unverified base rate stops the
calculation (DataUnavailable); a missing or unverified modifier is reported
as unavailable so only the scenarios that need it are dropped.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from engine.errors import DataUnavailable
from engine.profiles import Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedParameters:
    base_rate: float
    barrier_effectiveness: Optional[float]
    barrier_data_available: bool
    intervention_effectivenesses: Tuple[float, ...] = ()
    base_source_id: Optional[str] = None
    barrier_source_id: Optional[str] = None
    intervention_labels: Tuple[str, ...] = ()
    unverified_interventions: Tuple[str, ...] = ()


def _is_cited(source_id, citations):
    """
    Without a citation table every flagged-verified value is accepted;
    with one, its source must exist and carry a verification date.
    """
    if citations is None:
        return True
    if not source_id:
        return False
    citation = citations.get(source_id)
    return citation is not None and citation.verified


def resolve_parameters(profile, direction, selected_interventions=(), citations=None):
    direction = Direction(direction)

    if not profile.verified:
        raise DataUnavailable(
            profile.id, profile.verification_note or "Sources pending verification"
        )

    if not profile.rate_unit.is_per_act:
        # per-partnership / annual / lifetime figures are never converted here
        raise DataUnavailable(
            profile.id,
            f"base rate is expressed {profile.rate_unit.value}, not per act",
        )

    base = profile.base_rate.for_direction(direction)
    if base is None or not base.verified:
        raise DataUnavailable(
            profile.id, f"no verified per-act rate for direction {direction.value}"
        )

    # --- Barrier: direction-specific, then scalar, else unavailable ---
    barrier = profile.barrier_effectiveness.for_direction(direction)
    barrier_ok = (
        barrier is not None
        and barrier.verified
        and _is_cited(barrier.source_id, citations)
    )
    if barrier is not None and not barrier_ok:
        logger.info(
            "%s: barrier effectiveness for %s has no verified source (%s)",
            profile.id, direction.value, barrier.source_id,
        )

    # --- Interventions: only verified ones contribute ---
    effectivenesses = []
    labels = []
    unverified = []
    for item in selected_interventions:
        own = profile.intervention(item.id)
        if own.verified and _is_cited(own.source_id, citations):
            effectivenesses.append(own.effectiveness)
            labels.append(own.short_name)
        else:
            unverified.append(own.id)

    if unverified:
        logger.info("%s: unverified interventions %s", profile.id, unverified)

    return ResolvedParameters(
        base_rate=base.value,
        barrier_effectiveness=barrier.value if barrier_ok else None,
        barrier_data_available=barrier_ok,
        intervention_effectivenesses=tuple(effectivenesses),
        base_source_id=base.source_id,
        barrier_source_id=barrier.source_id if barrier_ok else None,
        intervention_labels=tuple(labels),
        unverified_interventions=tuple(unverified),
    )
