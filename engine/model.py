import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import pandas as pd

from engine.cumulative import project_timeline
from engine.errors import PartialDataUnavailable
from engine.intervention import compute_protection, intervention_label
from engine.resolver import resolve_parameters

logger = logging.getLogger(__name__)

SCENARIOS = ("unprotected", "barrier", "intervention", "combined")

BARRIER_LABEL = "Condom"


def scenario_labels(intervention_names):
    names = intervention_label(intervention_names)
    return {
        "unprotected": "No Protection",
        "barrier": f"{BARRIER_LABEL} Only",
        "intervention": f"{names} Only",
        "combined": f"{BARRIER_LABEL} + {names}",
    }


@dataclass(frozen=True)
class ExposureResult:
    timelines: Mapping
    per_act_rates: Mapping
    intervention_effectiveness: float
    omitted: Mapping
    duration_months: int

    @property
    def final_risks(self):
        return {name: t.final_risk for name, t in self.timelines.items()}

    @property
    def total_encounters(self):
        return self.timelines["unprotected"].total_encounters

    @property
    def best_scenario(self):
        # most protective scenario that could be computed
        for name in ("combined", "intervention", "barrier"):
            if name in self.timelines:
                return name
        return "unprotected"

    def relative_reduction(self, scenario=None):
        """Fractional cut in final cumulative risk vs. no protection."""
        scenario = scenario or self.best_scenario
        base = self.timelines["unprotected"].final_risk
        if base <= 0:
            return 1.0
        return (base - self.timelines[scenario].final_risk) / base

    def to_frame(self):
        frames = []
        for name, timeline in self.timelines.items():
            df = timeline.to_frame()
            df.insert(2, "Scenario", timeline.label)
            df.insert(3, "Scenario_key", name)
            frames.append(df)
        return pd.concat(frames, ignore_index=True)

    def summary(self):
        return {
            "Duration_months": self.duration_months,
            "Total_encounters": self.total_encounters,
            "Per_act_rates": dict(self.per_act_rates),
            "Intervention_effectiveness": self.intervention_effectiveness,
            "Final_risks": self.final_risks,
            "Omitted": dict(self.omitted),
        }


def _scenario_rate(name, params, scenario, rates):
    """
    Per-act rate for one scenario, None when the scenario is not active
    (nothing selected), PartialDataUnavailable when its data is missing.
    """
    if name == "unprotected":
        return rates["unprotected"]

    if name == "combined" and not scenario.selected_interventions:
        return None

    if name in ("barrier", "combined") and not params.barrier_data_available:
        raise PartialDataUnavailable(name, "no verified barrier effectiveness")

    if name in ("intervention", "combined"):
        if not scenario.selected_interventions:
            return None
        if params.unverified_interventions:
            raise PartialDataUnavailable(
                name,
                "no verified source for "
                + ", ".join(params.unverified_interventions),
            )

    return rates[name]


def simulate_exposure(params, scenario):
    """
    Project the resolved per-act risk over the scenario's horizon for every
    computable protection scenario.
    """
    rates, cascade = compute_protection(
        params.base_rate,
        params.barrier_effectiveness,
        params.intervention_effectivenesses,
    )
    labels = scenario_labels(scenario.selected_interventions)

    timelines = {}
    per_act = {}
    omitted = {}
    for name in SCENARIOS:
        try:
            rate = _scenario_rate(name, params, scenario, rates)
        except PartialDataUnavailable as e:
            logger.info("Omitting scenario %s", e)
            omitted[name] = e.reason
            continue
        if rate is None:
            continue
        per_act[name] = rate
        timelines[name] = project_timeline(
            rate,
            scenario.encounters_per_week,
            scenario.duration_months,
            label=labels[name],
        )

    return ExposureResult(
        timelines=MappingProxyType(timelines),
        per_act_rates=MappingProxyType(per_act),
        intervention_effectiveness=cascade["intervention_effectiveness"],
        omitted=MappingProxyType(omitted),
        duration_months=scenario.duration_months,
    )


def calculate(profile, scenario, citations=None):
    """
    Resolve and project in one step. DataUnavailable from the resolver is
    propagated untouched: no timeline exists for unavailable data.
    """
    if scenario.infection_id != profile.id:
        raise ValueError(
            f"Scenario is for {scenario.infection_id!r}, profile is {profile.id!r}"
        )
    params = resolve_parameters(
        profile, scenario.direction, scenario.selected_interventions, citations
    )
    return params, simulate_exposure(params, scenario)
