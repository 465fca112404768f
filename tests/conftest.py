import pytest

from engine.profiles import (
    DirectionalOrScalarRate,
    DirectionalRate,
    InfectionProfile,
    Intervention,
    RateValue,
)
from engine.sources import SourceCitation


def _intervention(id, role, effectiveness, **kwargs):
    return Intervention(
        id=id,
        display_name=f"{id} display",
        short_name=id.upper(),
        actor_role=role,
        effectiveness=effectiveness,
        source_id=kwargs.pop("source_id", f"{id}_src"),
        **kwargs,
    )


@pytest.fixture
def hiv_profile():
    return InfectionProfile(
        id="hiv",
        display_name="HIV",
        verified=True,
        rate_unit="per_act",
        base_rate=DirectionalRate(
            a_to_b=RateValue(0.0008, "hiv_rates"),
            b_to_a=RateValue(0.0004, "hiv_rates"),
        ),
        barrier_effectiveness=DirectionalOrScalarRate(
            scalar=RateValue(0.80, "hiv_condom")
        ),
        interventions=(
            _intervention("prep", "uninfected", 0.99),
            _intervention("uu", "infected", 1.0),
            _intervention("cab", "uninfected", 0.99),
        ),
        notes="Per-act rates assuming detectable viral load.",
    )


@pytest.fixture
def hsv2_profile():
    return InfectionProfile(
        id="hsv2",
        display_name="Herpes (HSV-2)",
        verified=True,
        rate_unit="per_act_derived",
        base_rate=DirectionalRate(
            a_to_b=RateValue(0.00053, "hsv2_rates", derived=True),
            b_to_a=RateValue(0.00053, "hsv2_rates", derived=True),
        ),
        barrier_effectiveness=DirectionalOrScalarRate(
            a_to_b=RateValue(0.96, "hsv2_condom"),
            b_to_a=RateValue(0.65, "hsv2_condom"),
            scalar=RateValue(0.805, "hsv2_condom"),
        ),
        interventions=(_intervention("valacyclovir", "infected", 0.47),),
    )


@pytest.fixture
def citations():
    ids = ["hiv_rates", "hiv_condom", "prep_src", "uu_src", "cab_src",
           "hsv2_rates", "hsv2_condom", "valacyclovir_src"]
    return {
        i: SourceCitation(
            id=i,
            name=f"Source {i}",
            url=f"https://example.org/{i}",
            quote=f"quote for {i}",
            verified_date="2025-01-14",
        )
        for i in ids
    }
