import streamlit as st

from engine.errors import DataUnavailable
from engine.intervention import group_interventions
from engine.model import calculate
from engine.params import load_citations, load_profiles
from engine.profiles import ACTOR_GROUP_LABELS, Direction, ExposureScenario
from engine.report import (
    citation_details,
    explain,
    format_percent,
    frequency_label,
    risk_colour,
    unavailable_message,
)

DIRECTION_LABELS = {
    Direction.A_TO_B: "Male to female",
    Direction.B_TO_A: "Female to male",
}

NO_SELECTION = "None"


@st.cache_data
def _load_tables(data_dir):
    return load_profiles(data_dir), load_citations(data_dir)


def _cited(text, source_id, citations):
    """Markdown for a number with a link to its quoted source."""
    citation = citations.get(source_id) if source_id else None
    if citation is None or not citation.verified:
        return f"{text} ⚠️"
    return f"[{text}]({citation.fragment_url} \"{citation.name}, verified {citation.verified_date}\")"


def _render_sources(source_ids, citations):
    shown = [citations[s] for s in dict.fromkeys(source_ids) if s in citations]
    if not shown:
        return
    with st.expander("Where these numbers come from"):
        for citation in shown:
            name, *rest = citation_details(citation)
            st.markdown(f"**[{name}]({citation.fragment_url})**")
            st.markdown("  \n".join(rest))


def _intervention_controls(profile, citations):
    selected = []
    for role, items in group_interventions(profile).items():
        options = [NO_SELECTION] + [i.id for i in items]
        names = {i.id: i.short_name for i in items}
        choice = st.sidebar.selectbox(
            ACTOR_GROUP_LABELS[role],
            options,
            index=1,
            format_func=lambda v: names.get(v, v),
            key=f"{profile.id}-{role.value}",
        )
        if choice == NO_SELECTION:
            st.sidebar.caption("No medication selected")
            continue
        item = profile.intervention(choice)
        badge = _cited(f"{item.effectiveness * 100:.0f}% reduction", item.source_id, citations)
        st.sidebar.markdown(f"**{item.display_name}**: {badge}")
        if item.note:
            st.sidebar.caption(item.note)
        selected.append(item)
    return tuple(selected)


def _render_unavailable(profile, error):
    title, body, reason = unavailable_message(profile, error)
    st.warning(f"**{title}**\n\n{body}\n\n_{reason}_")
    st.metric("Per-act rate", "⚠ Unverified")
    st.metric("Cumulative risk", "N/A")


def render_calculator_ui(data_dir):

    st.sidebar.header("Your situation")

    profiles, citations = _load_tables(str(data_dir))

    infection_id = st.sidebar.selectbox(
        "Infection", list(profiles), format_func=lambda k: profiles[k].display_name
    )
    profile = profiles[infection_id]

    direction = st.sidebar.radio(
        "Direction", list(Direction), format_func=lambda d: DIRECTION_LABELS[d]
    )
    per_week = st.sidebar.slider("Encounters per week", 1, 14, 2)
    st.sidebar.caption(f"{frequency_label(per_week)} per week")
    months = st.sidebar.slider("Duration (months)", 1, 24, 12)

    selected = _intervention_controls(profile, citations)

    scenario = ExposureScenario(
        infection_id=profile.id,
        direction=direction,
        encounters_per_week=per_week,
        duration_months=months,
        selected_interventions=selected,
    )

    try:
        params, result = calculate(profile, scenario, citations)
    except DataUnavailable as e:
        _render_unavailable(profile, e)
        return

    # --- Rates ---
    base_value = profile.base_rate.for_direction(scenario.direction)
    col1, col2 = st.columns(2)
    col1.markdown(
        "**Per-act rate**  \n"
        + _cited(format_percent(params.base_rate, 3), params.base_source_id, citations)
        + (" (calculated)" if base_value.derived else "")
    )
    if params.barrier_data_available:
        col2.markdown(
            "**With condom**  \n"
            + _cited(
                format_percent(result.per_act_rates["barrier"], 3),
                params.barrier_source_id,
                citations,
            )
            + f" ({params.barrier_effectiveness * 100:.0f}% reduction)"
        )
    else:
        col2.markdown("**With condom**  \nNo verified data")

    _render_sources(
        [params.base_source_id, params.barrier_source_id]
        + [i.source_id for i in selected],
        citations,
    )

    # --- Chart ---
    df = result.to_frame()
    chart = df.pivot(index="Month", columns="Scenario", values="Cumulative_risk") * 100
    st.subheader("Cumulative risk over time (%)")
    st.line_chart(chart)

    # --- Result ---
    best = result.timelines[result.best_scenario]
    unprotected = result.timelines["unprotected"]
    headline = format_percent(unprotected.final_risk)
    if best is not unprotected:
        headline += f" → {format_percent(best.final_risk)}"
    st.markdown(
        f"### Risk after {months} months: "
        f"<span style='color:{risk_colour(best.final_risk)}'>{headline}</span>",
        unsafe_allow_html=True,
    )
    for line in explain(result, profile):
        st.write(line)

    with st.expander("Month by month"):
        st.dataframe(df)
