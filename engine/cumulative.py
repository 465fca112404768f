import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Tuple

WEEKS_PER_MONTH = 4.33


def cumulative_risk(per_act_risk, encounters):
    """
    P(at least one transmission) over `encounters` independent acts:
    1 - (1 - r)^n.
    r >= 1 gives 1 for any n >= 1; r <= 0 or n <= 0 gives 0.
    Accepts a scalar or a numpy array of encounter counts.
    """
    n = np.asarray(encounters, dtype=float)
    r = float(per_act_risk)

    if r >= 1.0:
        risk = np.where(n >= 1, 1.0, 0.0)
    elif r <= 0.0:
        risk = np.zeros_like(n)
    else:
        risk = np.where(n > 0, 1.0 - np.power(1.0 - r, np.maximum(n, 0.0)), 0.0)

    if risk.ndim == 0:
        return float(risk)
    return risk


def encounters_by_month(encounters_per_week, months):
    """
    Total encounters elapsed at each month boundary 0..months.
    Each boundary is rounded (half up) on its own, not from a running total.
    """
    months = max(int(months), 0)
    per_month = max(float(encounters_per_week), 0.0) * WEEKS_PER_MONTH
    month_index = np.arange(0, months + 1)
    return month_index, np.floor(per_month * month_index + 0.5).astype(int)


@dataclass(frozen=True)
class TimelinePoint:
    month: int
    encounters: int
    risk: float


@dataclass(frozen=True)
class RiskTimeline:
    label: str
    per_act_risk: float
    points: Tuple[TimelinePoint, ...]

    @property
    def final(self):
        return self.points[-1]

    @property
    def final_risk(self):
        return self.points[-1].risk

    @property
    def total_encounters(self):
        return self.points[-1].encounters

    def to_frame(self):
        return pd.DataFrame(
            {
                "Month": [p.month for p in self.points],
                "Encounters": [p.encounters for p in self.points],
                "Cumulative_risk": [p.risk for p in self.points],
            }
        )


def project_timeline(per_act_risk, encounters_per_week, months, label=""):
    """
    Cumulative risk at every month boundary from 0 to `months` inclusive.
    """
    month_index, encounters = encounters_by_month(encounters_per_week, months)
    risk = cumulative_risk(per_act_risk, encounters)

    # numeric safety: keep the curve within [0, 1] and non-decreasing
    risk = np.maximum.accumulate(np.clip(risk, 0.0, 1.0))

    points = tuple(
        TimelinePoint(month=int(m), encounters=int(n), risk=float(p))
        for m, n, p in zip(month_index, encounters, risk)
    )
    return RiskTimeline(label=label, per_act_risk=float(per_act_risk), points=points)
