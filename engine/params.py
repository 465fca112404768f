import logging
from pathlib import Path

import pandas as pd

from engine.config import get_settings
from engine.profiles import (
    Direction,
    DirectionalOrScalarRate,
    DirectionalRate,
    InfectionProfile,
    Intervention,
    RateValue,
)
from engine.sources import SourceCitation

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {
    "profiles": {"id", "display_name", "verified", "rate_unit"},
    "base_rates": {"infection_id", "direction", "value", "source_id"},
    "barriers": {"infection_id", "direction", "value", "source_id"},
    "interventions": {
        "infection_id", "id", "display_name", "short_name",
        "actor_role", "effectiveness", "source_id",
    },
    "sources": {"id", "name", "url", "quote"},
}


def _flag(value, default=False):
    text = str(value).strip().lower()
    if text == "":
        return default
    if text in ("true", "yes", "1"):
        return True
    if text in ("false", "no", "0"):
        return False
    raise ValueError(f"Not a boolean flag: {value!r}")


def _opt(value):
    text = str(value).strip()
    return text or None


def load_all_parameters(directory=None):
    """
    Load every CSV table in the data directory into a dict of DataFrames,
    keyed by lower-cased file stem. All cells are read as text.
    """
    directory = Path(directory or get_settings().data_dir)
    if not directory.is_dir():
        raise RuntimeError(f"Data directory not found: {directory}")

    tables = {}
    for fname in sorted(directory.glob("*.csv")):
        key = fname.stem.lower()
        try:
            tables[key] = pd.read_csv(fname, dtype=str, keep_default_na=False)
        except Exception as e:
            raise RuntimeError(f"Failed to read {fname}: {e}")
    return tables


def _require(tables, name):
    if name not in tables:
        raise RuntimeError(f"Missing data table: {name}.csv")
    df = tables[name]
    missing = REQUIRED_COLUMNS[name] - set(df.columns)
    if missing:
        raise RuntimeError(f"{name}.csv is missing columns: {sorted(missing)}")
    return df


def _rate_value(row, table):
    try:
        return RateValue(
            value=float(row["value"]),
            source_id=_opt(row["source_id"]),
            verified=_flag(row.get("verified", ""), default=True),
            derived=_flag(row.get("derived", ""), default=False),
            note=str(row.get("note", "")).strip(),
        )
    except ValueError as e:
        raise RuntimeError(f"Invalid row in {table}.csv for {row['infection_id']}: {e}")


def _directional_rows(df, infection_id, table, allow_scalar):
    slots = {}
    for _, row in df[df["infection_id"] == infection_id].iterrows():
        raw = str(row["direction"]).strip()
        if raw == "":
            if not allow_scalar:
                raise RuntimeError(
                    f"{table}.csv: {infection_id} row has no direction"
                )
            key = "scalar"
        else:
            try:
                key = Direction(raw).value
            except ValueError:
                raise RuntimeError(
                    f"{table}.csv: {infection_id} has invalid direction {raw!r}"
                )
        if key in slots:
            raise RuntimeError(f"{table}.csv: duplicate {key} entry for {infection_id}")
        slots[key] = _rate_value(row, table)
    return slots


def extract_profiles(tables):
    """
    Build InfectionProfile objects from the raw tables, in profiles.csv order.
    """
    profiles_df = _require(tables, "profiles")
    rates_df = _require(tables, "base_rates")
    barriers_df = _require(tables, "barriers")
    interventions_df = _require(tables, "interventions")

    known = set(profiles_df["id"])
    for name, df in (
        ("base_rates", rates_df),
        ("barriers", barriers_df),
        ("interventions", interventions_df),
    ):
        unknown = set(df["infection_id"]) - known
        if unknown:
            raise RuntimeError(f"{name}.csv references unknown infections: {sorted(unknown)}")

    profiles = {}
    for _, row in profiles_df.iterrows():
        pid = row["id"].strip()

        base = _directional_rows(rates_df, pid, "base_rates", allow_scalar=False)
        barrier = _directional_rows(barriers_df, pid, "barriers", allow_scalar=True)

        interventions = []
        for _, irow in interventions_df[interventions_df["infection_id"] == pid].iterrows():
            try:
                interventions.append(
                    Intervention(
                        id=irow["id"].strip(),
                        display_name=irow["display_name"].strip(),
                        short_name=irow["short_name"].strip(),
                        actor_role=irow["actor_role"].strip() or "both",
                        effectiveness=float(irow["effectiveness"]),
                        category=str(irow.get("category", "")).strip() or "daily",
                        source_id=_opt(irow["source_id"]),
                        verified=_flag(irow.get("verified", ""), default=True),
                        note=str(irow.get("note", "")).strip(),
                    )
                )
            except ValueError as e:
                raise RuntimeError(f"Invalid row in interventions.csv for {pid}: {e}")

        try:
            profiles[pid] = InfectionProfile(
                id=pid,
                display_name=row["display_name"].strip(),
                verified=_flag(row["verified"]),
                rate_unit=row["rate_unit"].strip(),
                base_rate=DirectionalRate(
                    a_to_b=base.get("a_to_b"), b_to_a=base.get("b_to_a")
                ),
                barrier_effectiveness=DirectionalOrScalarRate(
                    a_to_b=barrier.get("a_to_b"),
                    b_to_a=barrier.get("b_to_a"),
                    scalar=barrier.get("scalar"),
                ),
                interventions=tuple(interventions),
                verification_note=str(row.get("verification_note", "")).strip(),
                notes=str(row.get("notes", "")).strip(),
                source_name=str(row.get("source_name", "")).strip(),
                source_url=str(row.get("source_url", "")).strip(),
            )
        except ValueError as e:
            raise RuntimeError(f"Invalid row in profiles.csv for {pid}: {e}")

    logger.debug("Loaded infection profiles: %s", list(profiles))
    return profiles


def extract_citations(tables, include_backup=False):
    names = ["sources"] + (["sources_backup"] if include_backup else [])
    citations = {}
    for name in names:
        if name == "sources":
            df = _require(tables, name)
        elif name in tables:
            df = tables[name]
        else:
            logger.warning("No %s.csv found; skipping backup sources", name)
            continue
        for _, row in df.iterrows():
            cid = row["id"].strip()
            if cid in citations:
                raise RuntimeError(f"{name}.csv: duplicate source id {cid}")
            citations[cid] = SourceCitation(
                id=cid,
                name=row["name"].strip(),
                url=row["url"].strip(),
                quote=row["quote"].strip(),
                verified_date=_opt(row.get("verified_date", "")),
                type=str(row.get("type", "")).strip() or "webpage",
                derived=_flag(row.get("derived", ""), default=False),
                derivation=str(row.get("derivation", "")).strip(),
                notes=str(row.get("notes", "")).strip(),
                primary_source_id=_opt(row.get("primary_source_id", "")),
            )
    return citations


def load_profiles(directory=None):
    return extract_profiles(load_all_parameters(directory))


def load_citations(directory=None, include_backup=False):
    return extract_citations(load_all_parameters(directory), include_backup)


def summarize_profiles(profiles, citations=None):
    """
    Count what was loaded and print a short overview.
    """
    summary = {
        "num_profiles": len(profiles),
        "num_verified_profiles": sum(1 for p in profiles.values() if p.verified),
        "num_interventions": sum(len(p.interventions) for p in profiles.values()),
        "num_direction_specific_barriers": sum(
            1
            for p in profiles.values()
            if p.barrier_effectiveness.a_to_b or p.barrier_effectiveness.b_to_a
        ),
    }
    if citations is not None:
        summary["num_sources"] = len(citations)
        summary["num_verified_sources"] = sum(1 for c in citations.values() if c.verified)

    print("Parameter summary:")
    for k, v in summary.items():
        print(f"  {k}: {v}")

    return summary
