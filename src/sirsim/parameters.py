"""
===========================================================
parameters.py
Last Updated: 2026-10-18
===========================================================

Description:
    Immutable parameter objects for the deterministic SIR model.

    Defines:
        - Rate schedules for the transmission rate β(t):
            ConstantRate, StepAtTime, PiecewiseConstantRate,
            PiecewiseLinearRate
        - Intervention: a single step reduction of β at time t*
        - SIRParameters: (β, γ, N) plus an optional intervention
          or rate schedule
        - InitialState: (S0, I0, R0_init) for a population of N
        - SolverSettings: tolerances and budget for the integrator
        - WalkthroughDefaults: the standard values used in the
          walkthrough scenarios

Example Usage:
    from sirsim.parameters import SIRParameters, InitialState
    params = SIRParameters(beta=0.3, gamma=0.1, N=100_000)
    params = params.with_intervention(t_star=30, beta_reduced=0.2)
    y0 = InitialState(N=100_000, I0=1)

Notes:
    - All rates are per unit time (days in the walkthrough).
    - Objects are frozen; "changing" a parameter means building
      a new object (dataclasses.replace or with_intervention).
    - Invalid inputs raise InvalidParameters; nothing is clamped.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import math
import numpy as np
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from .errors import InvalidParameters


def _require_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidParameters(f"{name} must be a real number, got {value!r}") from e
    if not math.isfinite(value):
        raise InvalidParameters(f"{name} must be finite, got {value}")
    return value


def _require_positive(name: str, value: float) -> float:
    value = _require_finite(name, value)
    if value <= 0:
        raise InvalidParameters(f"{name} must be positive, got {value}")
    return value


def _require_non_negative(name: str, value: float) -> float:
    value = _require_finite(name, value)
    if value < 0:
        raise InvalidParameters(f"{name} must be non-negative, got {value}")
    return value


# ==================== Transmission rate schedules ============================

@dataclass(frozen=True)
class ConstantRate:
    """β(t) = beta for all t"""
    beta: float

    def __post_init__(self):
        object.__setattr__(self, "beta", _require_positive("beta", self.beta))

    def beta_at(self, t: float) -> float:
        return self.beta

    def breakpoints(self) -> Tuple[float, ...]:
        return ()

    @property
    def initial_beta(self) -> float:
        return self.beta

    @property
    def final_beta(self) -> float:
        return self.beta

    @property
    def is_constant(self) -> bool:
        return True


@dataclass(frozen=True)
class StepAtTime:
    """
    Single switch of the transmission rate.

    β(t) = beta_before for t < t_switch and beta_after for t >= t_switch.
    The step is right-continuous: at exactly t_switch the new rate applies.
    """
    beta_before: float
    beta_after: float
    t_switch: float

    def __post_init__(self):
        object.__setattr__(self, "beta_before", _require_positive("beta_before", self.beta_before))
        object.__setattr__(self, "beta_after", _require_positive("beta_after", self.beta_after))
        object.__setattr__(self, "t_switch", _require_non_negative("t_switch", self.t_switch))

    def beta_at(self, t: float) -> float:
        return self.beta_after if t >= self.t_switch else self.beta_before

    def breakpoints(self) -> Tuple[float, ...]:
        return (self.t_switch,)

    @property
    def initial_beta(self) -> float:
        return self.beta_before

    @property
    def final_beta(self) -> float:
        return self.beta_after

    @property
    def is_constant(self) -> bool:
        return self.beta_before == self.beta_after


@dataclass(frozen=True)
class PiecewiseConstantRate:
    """
    Piecewise-constant β(t) over closed-open segments.

    edges: strictly increasing times, length K+1 for K segments
           ([e0, e1), [e1, e2), ..., [e_{K-1}, e_K])
    betas: length-K transmission rates, one per segment

    Times before e0 use the first segment and times after e_K use the last.
    """
    edges: Tuple[float, ...]
    betas: Tuple[float, ...]

    def __post_init__(self):
        edges = tuple(_require_finite("edges", e) for e in self.edges)
        betas = tuple(_require_positive("betas", b) for b in self.betas)
        if len(edges) < 2 or np.any(np.diff(edges) <= 0):
            raise InvalidParameters("edges must be strictly increasing, len>=2")
        if len(betas) != len(edges) - 1:
            raise InvalidParameters("betas length must be len(edges)-1")
        object.__setattr__(self, "edges", edges)
        object.__setattr__(self, "betas", betas)

    def _which_segment(self, t: float) -> int:
        k = int(np.searchsorted(self.edges, t, side="right") - 1)
        return max(0, min(k, len(self.betas) - 1))

    def beta_at(self, t: float) -> float:
        return self.betas[self._which_segment(t)]

    def breakpoints(self) -> Tuple[float, ...]:
        # interior edges are the only points where β can jump
        return self.edges[1:-1]

    @property
    def initial_beta(self) -> float:
        return self.betas[0]

    @property
    def final_beta(self) -> float:
        return self.betas[-1]

    @property
    def is_constant(self) -> bool:
        return len(set(self.betas)) == 1


@dataclass(frozen=True)
class PiecewiseLinearRate:
    """
    β(t) linearly interpolated between knots (times, betas), held
    constant outside the first and last knot.
    """
    times: Tuple[float, ...]
    betas: Tuple[float, ...]

    def __post_init__(self):
        times = tuple(_require_finite("times", x) for x in self.times)
        betas = tuple(_require_positive("betas", b) for b in self.betas)
        if len(times) < 1 or np.any(np.diff(times) <= 0):
            raise InvalidParameters("times must be strictly increasing and non-empty")
        if len(betas) != len(times):
            raise InvalidParameters("betas must have the same length as times")
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "betas", betas)

    def beta_at(self, t: float) -> float:
        return float(np.interp(t, self.times, self.betas))

    def breakpoints(self) -> Tuple[float, ...]:
        # β is continuous but has kinks at the knots
        return self.times

    @property
    def initial_beta(self) -> float:
        return self.betas[0]

    @property
    def final_beta(self) -> float:
        return self.betas[-1]

    @property
    def is_constant(self) -> bool:
        return len(set(self.betas)) == 1


RateSchedule = Union[ConstantRate, StepAtTime, PiecewiseConstantRate, PiecewiseLinearRate]


@dataclass(frozen=True)
class Intervention:
    """Reduce β to beta_reduced from time t_star onwards"""
    t_star: float
    beta_reduced: float

    def __post_init__(self):
        object.__setattr__(self, "t_star", _require_non_negative("t_star", self.t_star))
        object.__setattr__(self, "beta_reduced", _require_positive("beta_reduced", self.beta_reduced))


# ==================== Model parameters =======================================

@dataclass(frozen=True)
class SIRParameters:
    """
    Parameter set for the SIR model.

    Parameters:
    -----------
    beta: float
        Transmission rate (contacts per time x probability of transmission per contact).
        With a schedule attached this is the rate in force at the start.
    gamma: float
        Recovery rate (1/gamma = mean infectious period)
    N: float
        Total population size, fixed for the whole scenario
    intervention: Intervention, optional
        Single step reduction of β at t*
    schedule: RateSchedule, optional
        General β(t); mutually exclusive with intervention
    """
    beta: float
    gamma: float
    N: float
    intervention: Optional[Intervention] = None
    schedule: Optional[RateSchedule] = None
    _schedule: RateSchedule = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "beta", _require_positive("beta", self.beta))
        object.__setattr__(self, "gamma", _require_positive("gamma", self.gamma))
        object.__setattr__(self, "N", _require_positive("N", self.N))
        if self.intervention is not None and self.schedule is not None:
            raise InvalidParameters("use either an intervention or a rate schedule, not both")
        if self.schedule is not None and not math.isclose(self.beta, self.schedule.initial_beta):
            raise InvalidParameters(
                f"beta={self.beta} does not match the schedule's initial rate "
                f"{self.schedule.initial_beta}"
            )
        # built once; sir_rhs looks β(t) up on every evaluation
        if self.schedule is not None:
            schedule = self.schedule
        elif self.intervention is not None:
            schedule = StepAtTime(self.beta, self.intervention.beta_reduced, self.intervention.t_star)
        else:
            schedule = ConstantRate(self.beta)
        object.__setattr__(self, "_schedule", schedule)

    @classmethod
    def from_schedule(cls, schedule: RateSchedule, gamma: float, N: float) -> "SIRParameters":
        return cls(beta=schedule.initial_beta, gamma=gamma, N=N, schedule=schedule)

    def with_intervention(self, t_star: float, beta_reduced: float) -> "SIRParameters":
        """Return a copy of these parameters with an intervention attached"""
        return replace(self, intervention=Intervention(t_star, beta_reduced), schedule=None)

    @property
    def rate_schedule(self) -> RateSchedule:
        return self._schedule

    def beta_at(self, t: float) -> float:
        return self._schedule.beta_at(t)

    @property
    def R0(self) -> float:
        """Basic reproduction number before any change in β"""
        return self.beta / self.gamma

    @property
    def infectious_period(self) -> float:
        return 1.0 / self.gamma


@dataclass(frozen=True)
class InitialState:
    """
    Initial compartment sizes. S0 defaults to N - I0 - R0_init; when
    given explicitly, S0 + I0 + R0_init must equal N.
    """
    N: float
    I0: float
    R0_init: float = 0.0
    S0: Optional[float] = None

    def __post_init__(self):
        N = _require_positive("N", self.N)
        I0 = _require_non_negative("I0", self.I0)
        R0_init = _require_non_negative("R0_init", self.R0_init)
        if I0 + R0_init > N:
            raise InvalidParameters(f"I0 + R0_init = {I0 + R0_init} exceeds population N = {N}")
        if self.S0 is None:
            S0 = N - I0 - R0_init
        else:
            S0 = _require_non_negative("S0", self.S0)
            if not math.isclose(S0 + I0 + R0_init, N, rel_tol=1e-12, abs_tol=1e-9):
                raise InvalidParameters(
                    f"Initial conditions sum to {S0 + I0 + R0_init}, but population is {N}"
                )
        object.__setattr__(self, "N", N)
        object.__setattr__(self, "I0", I0)
        object.__setattr__(self, "R0_init", R0_init)
        object.__setattr__(self, "S0", S0)

    def as_array(self) -> np.ndarray:
        return np.array([self.S0, self.I0, self.R0_init], dtype=float)


# ==================== Solver configuration ===================================

_SOLVER_METHODS = ("RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA")


@dataclass(frozen=True)
class SolverSettings:
    """
    Settings for the scipy.integrate ODE solver that steps each scenario.

    max_evaluations bounds the number of right-hand-side evaluations for a
    whole scenario so that a pathological parameter set fails instead of
    running for a very long time. It is checked after every accepted step,
    so a run may overshoot it by the evaluations of one step. negative_tolerance is how far below zero
    a compartment may dip before the run counts as an integration fault.
    conservation_tolerance is the allowed |S + I + R - N| before a
    ConservationWarning is attached to the summary.
    """
    method: str = "RK45"
    rtol: float = 1e-6
    atol: float = 1e-6
    max_step: float = np.inf
    max_evaluations: int = 200_000
    negative_tolerance: float = 1e-3
    conservation_tolerance: float = 1e-3

    def __post_init__(self):
        if self.method not in _SOLVER_METHODS:
            raise InvalidParameters(f"method must be one of {_SOLVER_METHODS}, got {self.method!r}")
        _require_positive("rtol", self.rtol)
        _require_positive("atol", self.atol)
        if not self.max_step > 0:
            raise InvalidParameters(f"max_step must be positive, got {self.max_step}")
        if int(self.max_evaluations) < 1:
            raise InvalidParameters(f"max_evaluations must be at least 1, got {self.max_evaluations}")
        _require_non_negative("negative_tolerance", self.negative_tolerance)
        _require_positive("conservation_tolerance", self.conservation_tolerance)


# ==================== Walkthrough defaults ===================================

@dataclass(frozen=True)
class WalkthroughDefaults:
    """
    Standard values used throughout the SIR walkthrough.

    All rates are per day.
    """
    N: float = 100_000
    I0: float = 1.0
    R0_init: float = 0.0
    beta: float = 0.3               # R0 = 3 with gamma = 0.1
    gamma: float = 0.1              # 10 day infectious period
    beta_high: float = 0.6          # R0 = 6
    gamma_slow: float = 0.05        # 20 day infectious period, R0 = 6
    beta_reduced: float = 0.2       # transmission after an intervention
    intervention_times: Tuple[float, ...] = (15.0, 30.0, 45.0)
    t_max: float = 160.0
    dt: float = 1.0
    solver: SolverSettings = field(default_factory=SolverSettings)

    def time_grid(self) -> np.ndarray:
        n = int(round(self.t_max / self.dt)) + 1
        return np.linspace(0.0, self.t_max, n)

    def initial_state(self) -> InitialState:
        return InitialState(N=self.N, I0=self.I0, R0_init=self.R0_init)

    def parameters(self, beta: Optional[float] = None, gamma: Optional[float] = None) -> SIRParameters:
        return SIRParameters(beta=self.beta if beta is None else beta,
                             gamma=self.gamma if gamma is None else gamma,
                             N=self.N)

    def print_summary(self):
        print("SIR WALKTHROUGH DEFAULTS:")
        print(f"Population size: {self.N:,.0f}")
        print(f"Initial infected: {self.I0:g}")
        print(f"beta = {self.beta}, gamma = {self.gamma}, R0 = {self.beta / self.gamma:.2f}")
        print(f"Intervention: beta -> {self.beta_reduced} at t* in {list(self.intervention_times)}")
        print(f"Time grid: 0 to {self.t_max:g} by {self.dt:g}")
