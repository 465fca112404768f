"""Command-line runner.

Usage (from repo root):
    python -m engine.exec_engine summary
    python -m engine.exec_engine risk --infection hiv --direction a_to_b --per-week 2 --months 12 --intervention prep
    python -m engine.exec_engine verify --include-backup
"""
import argparse
import sys

from engine.config import configure_logging, get_settings
from engine.errors import DataUnavailable
from engine.intervention import default_selection, select_interventions
from engine.model import calculate
from engine.params import load_citations, load_profiles, summarize_profiles
from engine.profiles import Direction, ExposureScenario
from engine.report import explain, format_percent, unavailable_message
from engine.sources import fetch_page_text, missing_sources, verify_sources


def _run_summary(args, settings):
    profiles = load_profiles(settings.data_dir)
    citations = load_citations(settings.data_dir)
    summarize_profiles(profiles, citations)
    missing = missing_sources(profiles, citations)
    if missing:
        print("Sources referenced but not in the citation table:", ", ".join(missing))
    return 0


def _run_risk(args, settings):
    profiles = load_profiles(settings.data_dir)
    citations = load_citations(settings.data_dir)
    if args.infection not in profiles:
        print(f"Unknown infection {args.infection!r}; choose from {', '.join(profiles)}")
        return 2
    profile = profiles[args.infection]

    try:
        if args.intervention is None:
            selected = default_selection(profile)
        else:
            selected = select_interventions(profile, args.intervention)

        scenario = ExposureScenario(
            infection_id=profile.id,
            direction=args.direction,
            encounters_per_week=args.per_week,
            duration_months=args.months,
            selected_interventions=selected,
        )
    except (KeyError, ValueError) as e:
        print(f"Invalid scenario: {e}")
        return 2

    try:
        params, result = calculate(profile, scenario, citations)
    except DataUnavailable as e:
        for line in unavailable_message(profile, e):
            print(line)
        return 1

    print(f"{profile.display_name} ({scenario.direction.value})")
    print(f"Per-act rate: {format_percent(params.base_rate, 3)}")
    for name, rate in result.per_act_rates.items():
        print(f"  {result.timelines[name].label}: {format_percent(rate, 3)} per act")
    for line in explain(result, profile):
        print(line)
    if args.table:
        print(result.to_frame().to_string(index=False))
    return 0


def _run_verify(args, settings):
    citations = load_citations(settings.data_dir, include_backup=args.include_backup)

    def fetch(url):
        return fetch_page_text(url, timeout=settings.fetch_timeout, user_agent=settings.user_agent)

    report = verify_sources(citations, max_workers=settings.max_workers, fetch=fetch)

    print(report.to_frame().to_string(index=False))
    print(f"Passed:  {len(report.passed)}")
    print(f"Failed:  {len(report.failed)}")
    print(f"Skipped: {len(report.skipped)}")
    print(f"Errors:  {len(report.errors)}")
    for outcome in report.failed:
        for part in outcome.missing_parts:
            print(f"  {outcome.source_id} missing: \"{part}\"")
    return 0 if report.ok else 1


def main(argv=None):
    p = argparse.ArgumentParser(description="STI cumulative risk calculator")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Summarise the loaded data tables")

    risk = sub.add_parser("risk", help="Cumulative risk for one exposure scenario")
    risk.add_argument("--infection", required=True)
    risk.add_argument(
        "--direction", default=Direction.A_TO_B.value,
        choices=[d.value for d in Direction],
    )
    risk.add_argument("--per-week", type=float, default=1.0)
    risk.add_argument("--months", type=int, default=12)
    risk.add_argument(
        "--intervention",
        action="append",
        default=None,
        help="Intervention id (repeatable). Omit to use the default selection; "
        "pass an empty string for none.",
    )
    risk.add_argument("--table", action="store_true", help="Print the month-by-month table")

    verify = sub.add_parser("verify", help="Check every citation quote against its page")
    verify.add_argument("--include-backup", action="store_true")

    args = p.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    handlers = {"summary": _run_summary, "risk": _run_risk, "verify": _run_verify}
    return handlers[args.command](args, settings)


if __name__ == "__main__":
    sys.exit(main())
