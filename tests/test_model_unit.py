import dataclasses

import pytest

from engine.errors import DataUnavailable
from engine.model import calculate, simulate_exposure
from engine.profiles import DirectionalOrScalarRate, ExposureScenario
from engine.resolver import ResolvedParameters


def _scenario(profile, selected=(), per_week=1, months=12, direction="a_to_b"):
    return ExposureScenario(
        infection_id=profile.id,
        direction=direction,
        encounters_per_week=per_week,
        duration_months=months,
        selected_interventions=selected,
    )


def test_all_four_scenarios_are_produced(hiv_profile, citations) -> None:
    selected = (hiv_profile.intervention("prep"),)
    params, result = calculate(hiv_profile, _scenario(hiv_profile, selected), citations)

    assert list(result.timelines) == ["unprotected", "barrier", "intervention", "combined"]
    assert result.omitted == {}
    assert result.timelines["unprotected"].final_risk == pytest.approx(1 - 0.9992 ** 52)
    assert result.per_act_rates["barrier"] == pytest.approx(0.0008 * 0.2)
    assert result.per_act_rates["combined"] == pytest.approx(0.0008 * 0.2 * 0.01)
    assert result.intervention_effectiveness == pytest.approx(0.99)
    assert result.timelines["intervention"].label == "PREP Only"
    assert result.timelines["combined"].label == "Condom + PREP"


def test_complete_protection_gives_zero_risk(hiv_profile, citations) -> None:
    selected = (hiv_profile.intervention("uu"), hiv_profile.intervention("prep"))
    _, result = calculate(hiv_profile, _scenario(hiv_profile, selected, per_week=14), citations)
    assert result.intervention_effectiveness == 1.0
    assert result.final_risks["intervention"] == 0.0
    assert result.final_risks["combined"] == 0.0
    assert result.final_risks["unprotected"] > 0.4


def test_protection_ordering(hsv2_profile, citations) -> None:
    selected = (hsv2_profile.intervention("valacyclovir"),)
    _, result = calculate(hsv2_profile, _scenario(hsv2_profile, selected, per_week=3, months=24), citations)
    risks = result.final_risks
    assert risks["combined"] <= risks["barrier"] <= risks["unprotected"]
    assert risks["combined"] <= risks["intervention"] <= risks["unprotected"]
    assert result.best_scenario == "combined"
    assert 0.0 < result.relative_reduction() < 1.0


def test_no_selection_leaves_intervention_scenarios_inactive(hiv_profile, citations) -> None:
    _, result = calculate(hiv_profile, _scenario(hiv_profile), citations)
    assert list(result.timelines) == ["unprotected", "barrier"]
    assert result.omitted == {}
    assert result.intervention_effectiveness == 0.0


def test_missing_barrier_omits_only_barrier_scenarios(hiv_profile, citations) -> None:
    profile = dataclasses.replace(hiv_profile, barrier_effectiveness=DirectionalOrScalarRate())
    selected = (profile.intervention("prep"),)
    _, result = calculate(profile, _scenario(profile, selected), citations)
    assert list(result.timelines) == ["unprotected", "intervention"]
    assert set(result.omitted) == {"barrier", "combined"}


def test_uncited_intervention_omits_intervention_scenarios(hiv_profile, citations) -> None:
    del citations["prep_src"]
    selected = (hiv_profile.intervention("prep"),)
    _, result = calculate(hiv_profile, _scenario(hiv_profile, selected), citations)
    assert list(result.timelines) == ["unprotected", "barrier"]
    assert "prep" in result.omitted["intervention"]
    assert "combined" in result.omitted


def test_unverified_profile_produces_no_timeline(hiv_profile) -> None:
    profile = dataclasses.replace(hiv_profile, verified=False)
    with pytest.raises(DataUnavailable):
        calculate(profile, _scenario(profile))


def test_recomputation_is_identical(hsv2_profile) -> None:
    params = ResolvedParameters(
        base_rate=0.00053,
        barrier_effectiveness=0.96,
        barrier_data_available=True,
        intervention_effectivenesses=(0.47,),
    )
    scenario = _scenario(hsv2_profile, (hsv2_profile.intervention("valacyclovir"),), per_week=2)
    first = simulate_exposure(params, scenario)
    second = simulate_exposure(params, scenario)
    assert dict(first.timelines) == dict(second.timelines)
    assert first.to_frame().equals(second.to_frame())


def test_frame_is_long_form(hiv_profile, citations) -> None:
    selected = (hiv_profile.intervention("prep"),)
    _, result = calculate(hiv_profile, _scenario(hiv_profile, selected, months=6), citations)
    df = result.to_frame()
    assert list(df.columns) == ["Month", "Encounters", "Scenario", "Scenario_key", "Cumulative_risk"]
    assert len(df) == 4 * 7
    assert set(df["Scenario"]) == {"No Protection", "Condom Only", "PREP Only", "Condom + PREP"}


def test_summary_reports_final_risks(hiv_profile, citations) -> None:
    _, result = calculate(hiv_profile, _scenario(hiv_profile), citations)
    summary = result.summary()
    assert summary["Total_encounters"] == 52
    assert set(summary["Final_risks"]) == {"unprotected", "barrier"}


def test_scenario_must_match_profile(hiv_profile, hsv2_profile) -> None:
    with pytest.raises(ValueError):
        calculate(hiv_profile, _scenario(hsv2_profile))


def test_scenario_validates_inputs(hiv_profile) -> None:
    with pytest.raises(ValueError):
        _scenario(hiv_profile, per_week=0)
    with pytest.raises(ValueError):
        _scenario(hiv_profile, months=0)
    with pytest.raises(ValueError):
        _scenario(hiv_profile, months=2.5)
    with pytest.raises(ValueError):
        _scenario(hiv_profile, per_week=float("inf"))
    with pytest.raises(ValueError):
        _scenario(hiv_profile, per_week=float("nan"))


def test_missing_barrier_without_selection_is_not_a_combined_gap(hiv_profile, citations) -> None:
    profile = dataclasses.replace(hiv_profile, barrier_effectiveness=DirectionalOrScalarRate())
    _, result = calculate(profile, _scenario(profile), citations)
    assert list(result.timelines) == ["unprotected"]
    assert set(result.omitted) == {"barrier"}
