# engine/profiles.py

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Direction(str, Enum):
    # A carries the infection, B is exposed (bundled data: A=male, B=female)
    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


class ActorRole(str, Enum):
    INFECTED = "infected"
    UNINFECTED = "uninfected"
    BOTH = "both"


ACTOR_GROUP_ORDER = (ActorRole.INFECTED, ActorRole.UNINFECTED, ActorRole.BOTH)

ACTOR_GROUP_LABELS = {
    ActorRole.INFECTED: "Medication for partner with the STI",
    ActorRole.UNINFECTED: "Prevention for partner without the STI",
    ActorRole.BOTH: "Prevention for both partners",
}


class RateUnit(str, Enum):
    PER_ACT = "per_act"
    PER_ACT_DERIVED = "per_act_derived"
    PER_PARTNERSHIP = "per_partnership"
    ANNUAL = "annual"
    LIFETIME = "lifetime"

    @property
    def is_per_act(self):
        return self in (RateUnit.PER_ACT, RateUnit.PER_ACT_DERIVED)


def _check_probability(name, value):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class RateValue:
    value: float
    source_id: Optional[str] = None
    verified: bool = True
    derived: bool = False
    note: str = ""

    def __post_init__(self):
        _check_probability("rate", self.value)


@dataclass(frozen=True)
class DirectionalRate:
    """Per-direction values with no scalar fallback (base transmission rates)."""

    a_to_b: Optional[RateValue] = None
    b_to_a: Optional[RateValue] = None

    def for_direction(self, direction):
        direction = Direction(direction)
        if direction is Direction.A_TO_B:
            return self.a_to_b
        return self.b_to_a


@dataclass(frozen=True)
class DirectionalOrScalarRate(DirectionalRate):
    """
    Per-direction values plus an optional scalar used for any direction
    that has no value of its own. An instance with nothing set means
    "no data".
    """

    scalar: Optional[RateValue] = None

    def for_direction(self, direction):
        value = super().for_direction(direction)
        if value is not None:
            return value
        return self.scalar

    @property
    def is_empty(self):
        return self.a_to_b is None and self.b_to_a is None and self.scalar is None


@dataclass(frozen=True)
class Intervention:
    id: str
    display_name: str
    short_name: str
    actor_role: ActorRole
    effectiveness: float
    category: str = "daily"
    source_id: Optional[str] = None
    verified: bool = True
    note: str = ""

    def __post_init__(self):
        _check_probability(f"{self.id} effectiveness", self.effectiveness)
        object.__setattr__(self, "actor_role", ActorRole(self.actor_role))


@dataclass(frozen=True)
class InfectionProfile:
    id: str
    display_name: str
    verified: bool
    rate_unit: RateUnit
    base_rate: DirectionalRate
    barrier_effectiveness: DirectionalOrScalarRate = field(
        default_factory=DirectionalOrScalarRate
    )
    interventions: Tuple[Intervention, ...] = ()
    verification_note: str = ""
    notes: str = ""
    source_name: str = ""
    source_url: str = ""

    def __post_init__(self):
        object.__setattr__(self, "rate_unit", RateUnit(self.rate_unit))
        object.__setattr__(self, "interventions", tuple(self.interventions))

    def intervention(self, intervention_id):
        for item in self.interventions:
            if item.id == intervention_id:
                return item
        raise KeyError(f"{self.id} has no intervention {intervention_id!r}")


@dataclass(frozen=True)
class ExposureScenario:
    """User input for one recomputation; rebuilt, never mutated."""

    infection_id: str
    direction: Direction
    encounters_per_week: float
    duration_months: int
    selected_interventions: Tuple[Intervention, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "direction", Direction(self.direction))
        object.__setattr__(
            self, "selected_interventions", tuple(self.selected_interventions)
        )
        if not (math.isfinite(self.encounters_per_week) and self.encounters_per_week > 0):
            raise ValueError("encounters_per_week must be a positive finite number")
        if int(self.duration_months) != self.duration_months or self.duration_months < 1:
            raise ValueError("duration_months must be a positive whole number")
        object.__setattr__(self, "duration_months", int(self.duration_months))
