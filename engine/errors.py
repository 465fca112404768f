# engine/errors.py


class RiskDataError(ValueError):
    """Base class for missing or unverified risk data."""


class DataUnavailable(RiskDataError):
    """
    A required number (per-act base rate, profile verification, per-act unit)
    is missing. No timeline may be produced; callers show an explicit
    "not yet available" state instead of a zero.
    """

    def __init__(self, profile_id, reason):
        self.profile_id = profile_id
        self.reason = reason
        super().__init__(f"{profile_id}: {reason}")


class PartialDataUnavailable(RiskDataError):
    """An optional modifier lacks verified data; only its scenario is dropped."""

    def __init__(self, scenario, reason):
        self.scenario = scenario
        self.reason = reason
        super().__init__(f"{scenario}: {reason}")


class CitationNotFound(RiskDataError):
    """One or more quote fragments were not found on the fetched page."""

    def __init__(self, source_id, missing_parts, parts_total):
        self.source_id = source_id
        self.missing_parts = list(missing_parts)
        self.parts_total = parts_total
        found = parts_total - len(self.missing_parts)
        super().__init__(
            f"{source_id}: found {found}/{parts_total} quote parts"
        )
