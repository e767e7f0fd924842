"""
===========================================================
scenario.py
Last Updated: 2026-10-18
===========================================================

Description:
    Scenario runner for the deterministic SIR model. Steps a
    scipy.integrate ODE solver (RK45 by default) with sir_rhs as the
    right-hand side and reads the state at every requested time point
    from each step's dense output.

    Defines:
        - Trajectory: immutable (t, S, I, R) samples
        - integrate(): solve the model over a time grid
        - Scenario: labelled (initial state, parameters, time grid)
          with a Configured -> Running -> Completed | Failed lifecycle
        - simulate(): integrate and return the trajectory in one call

Example Usage:
    from sirsim.scenario import Scenario
    sc = Scenario.from_values("baseline", N=100_000, I0=1,
                              beta=0.3, gamma=0.1, t=np.arange(161))
    sc.run()
    sc.summary.peak_infected

Notes:
    - Integration is split at every time where β(t) jumps, so the
      adaptive solver never steps across a discontinuity.
    - A run that cannot reach every grid time, exceeds its evaluation
      budget, or produces non-finite or clearly negative values is a
      Failed scenario; no partial trajectory is handed out.
    - The budget is checked after every accepted step, so the grid
      points reached before a failure stay on the IntegrationFailure.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import math
import threading
import numpy as np
import pandas as pd
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple, Union
from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, Radau

from .errors import IntegrationFailure, InvalidParameters, ScenarioStateError
from .metrics import EpidemicSummary, summarize
from .model import sir_rhs
from .parameters import InitialState, SIRParameters, SolverSettings

_COMPARTMENTS = ("S", "I", "R")


@dataclass(frozen=True, eq=False)
class Trajectory:
    """
    Model output sampled on the requested time grid.
    Arrays are copied on construction and made read-only.
    """
    t: np.ndarray
    S: np.ndarray
    I: np.ndarray
    R: np.ndarray

    def __post_init__(self):
        arrays = {}
        for name in ("t",) + _COMPARTMENTS:
            arr = np.array(getattr(self, name), dtype=float)
            if arr.ndim != 1:
                raise InvalidParameters(f"{name} must be one-dimensional")
            arr.setflags(write=False)
            arrays[name] = arr
        if len({arr.shape for arr in arrays.values()}) != 1:
            raise InvalidParameters("t, S, I and R must have the same length")
        for name, arr in arrays.items():
            object.__setattr__(self, name, arr)

    def __len__(self) -> int:
        return len(self.t)

    @property
    def total(self) -> np.ndarray:
        return self.S + self.I + self.R

    @property
    def final_state(self) -> np.ndarray:
        return np.array([self.S[-1], self.I[-1], self.R[-1]])

    def compartment(self, name: str) -> np.ndarray:
        if name not in _COMPARTMENTS:
            raise ValueError(f"compartment must be one of {_COMPARTMENTS}, got {name!r}")
        return getattr(self, name)

    def to_dataframe(self) -> pd.DataFrame:
        """ Convert to pandas DataFrame for easy manipulation """
        return pd.DataFrame({"t": self.t, "S": self.S, "I": self.I, "R": self.R})


def validate_time_grid(t) -> np.ndarray:
    """Return t as a float array, or raise InvalidParameters"""
    t = np.array(t, dtype=float)
    if t.ndim != 1 or t.size < 1:
        raise InvalidParameters("time grid must be a non-empty 1D sequence")
    if not np.all(np.isfinite(t)):
        raise InvalidParameters("time grid must be finite")
    if t[0] < 0:
        raise InvalidParameters("time grid must be non-negative")
    if np.any(np.diff(t) <= 0):
        raise InvalidParameters("time grid must be strictly increasing")
    return t


def _segments(t0: float, t1: float, breakpoints) -> Iterator[Tuple[float, float]]:
    """Split [t0, t1] at the breakpoints that fall strictly inside it"""
    if t1 <= t0:
        return iter(())
    inner = sorted({float(b) for b in breakpoints if t0 < b < t1})
    edges = [t0] + inner + [t1]
    return zip(edges[:-1], edges[1:])


_SOLVERS = {
    "RK45": RK45,
    "RK23": RK23,
    "DOP853": DOP853,
    "Radau": Radau,
    "BDF": BDF,
    "LSODA": LSODA,
}


class _EvaluationBudget:
    """Counts right-hand-side calls for a single run"""

    def __init__(self, limit: int):
        self.limit = int(limit)
        self.used = 0

    def spend(self):
        self.used += 1

    @property
    def exhausted(self) -> bool:
        return self.used > self.limit


def _partial(t: np.ndarray, out: np.ndarray, filled: int) -> dict:
    return {
        "t": t[:filled].copy(),
        "S": out[0, :filled].copy(),
        "I": out[1, :filled].copy(),
        "R": out[2, :filled].copy(),
        "complete": False,
    }


def _failure(message: str, t: np.ndarray, out: np.ndarray, filled: int) -> IntegrationFailure:
    at = float(t[filled]) if filled < t.size else float(t[-1])
    return IntegrationFailure(message,
                              time=at,
                              last_state=out[:, filled - 1].copy(),
                              partial=_partial(t, out, filled))


def integrate(params: SIRParameters,
              initial_state: InitialState,
              t,
              settings: Optional[SolverSettings] = None) -> Trajectory:
    """
    Integrate the SIR model over the time grid t.

    Parameters
    ----------
    params : SIRParameters
        Rates, population size and optional β(t) schedule
    initial_state : InitialState
        State at t[0]; its N must match params.N
    t : array-like
        Strictly increasing, non-negative output times
    settings : SolverSettings, optional
        Solver method, tolerances and evaluation budget

    Returns
    -------
    Trajectory
        State at exactly the requested times

    Raises
    ------
    InvalidParameters
        Malformed grid or inconsistent population size
    IntegrationFailure
        The solver could not produce every requested time point
    """
    settings = settings if settings is not None else SolverSettings()
    t = validate_time_grid(t)
    if not math.isclose(initial_state.N, params.N):
        raise InvalidParameters(
            f"initial state population {initial_state.N:g} does not match N={params.N:g}"
        )

    out = np.empty((3, t.size), dtype=float)
    out[:, 0] = initial_state.as_array()
    y = out[:, 0].copy()
    filled = 1
    budget = _EvaluationBudget(settings.max_evaluations)

    for a, b in _segments(t[0], t[-1], params.rate_schedule.breakpoints()):
        # evaluate β from the left of b so a switch at b belongs to the next segment
        t_hi = np.nextafter(b, -np.inf)

        def rhs(ti, yi, t_hi=t_hi):
            budget.spend()
            return sir_rhs(min(ti, t_hi), yi, params)

        solver = _SOLVERS[settings.method](rhs, a, y, b,
                                           max_step=settings.max_step,
                                           rtol=settings.rtol,
                                           atol=settings.atol)
        while solver.status == "running":
            message = solver.step()
            if solver.status == "failed":
                raise _failure(f"ODE solver failed: {message}", t, out, filled)

            # grid times crossed by this step come from its dense output
            reached = int(np.searchsorted(t, solver.t, side="right"))
            if reached > filled:
                block = solver.dense_output()(t[filled:reached])
                bad = np.nonzero(~np.all(np.isfinite(block), axis=0)
                                 | np.any(block < -settings.negative_tolerance, axis=0))[0]
                n_ok = int(bad[0]) if bad.size else block.shape[1]
                out[:, filled:filled + n_ok] = block[:, :n_ok]
                filled += n_ok
                if bad.size:
                    raise _failure("integrator produced non-finite or negative compartment values",
                                   t, out, filled)

            if not np.all(np.isfinite(solver.y)):
                raise _failure("integrator produced non-finite compartment values", t, out, filled)
            if budget.exhausted and filled < t.size:
                raise _failure(
                    f"exceeded budget of {budget.limit} right-hand-side evaluations "
                    f"near t={solver.t:g}",
                    t, out, filled)

        y = solver.y

    return Trajectory(t=t, S=out[0], I=out[1], R=out[2])


# ==================== Scenario lifecycle =====================================

class ScenarioStatus(Enum):
    """Lifecycle states of a Scenario"""
    CONFIGURED = "configured"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class Completed:
    trajectory: Trajectory


@dataclass(frozen=True, eq=False)
class Failed:
    error: IntegrationFailure

    @property
    def reason(self) -> str:
        return str(self.error)


Outcome = Union[Completed, Failed]


class Scenario:
    """
    A labelled SIR experiment: initial state, parameters and time grid.

    Scenarios are single use. run() moves the scenario from CONFIGURED
    through RUNNING to COMPLETED or FAILED; a different parameter set
    needs a new Scenario.

    Parameters:
    -----------
    label: str
        Human-readable name used in comparison tables and plots
    initial_state: InitialState
        Compartment sizes at t[0]
    params: SIRParameters
        Rates and optional intervention / rate schedule
    t: array-like
        Output time grid
    settings: SolverSettings, optional
        Integrator settings (defaults to SolverSettings())
    """

    def __init__(self,
                 label: str,
                 initial_state: InitialState,
                 params: SIRParameters,
                 t,
                 settings: Optional[SolverSettings] = None):
        if not math.isclose(initial_state.N, params.N):
            raise InvalidParameters(
                f"initial state population {initial_state.N:g} does not match N={params.N:g}"
            )
        self.label = str(label)
        self.initial_state = initial_state
        self.params = params
        self.t = validate_time_grid(t)
        self.t.setflags(write=False)
        self.settings = settings if settings is not None else SolverSettings()

        self._status = ScenarioStatus.CONFIGURED
        self._outcome: Optional[Outcome] = None
        self._summary: Optional[EpidemicSummary] = None
        # guards the CONFIGURED -> RUNNING transition
        self._lock = threading.Lock()

    @classmethod
    def from_values(cls,
                    label: str,
                    N: float,
                    I0: float,
                    beta: float,
                    gamma: float,
                    t,
                    R0_init: float = 0.0,
                    t_star: Optional[float] = None,
                    beta_reduced: Optional[float] = None,
                    settings: Optional[SolverSettings] = None) -> "Scenario":
        """Build a scenario from plain numbers, with an optional (t*, β') intervention"""
        params = SIRParameters(beta=beta, gamma=gamma, N=N)
        if (t_star is None) != (beta_reduced is None):
            raise InvalidParameters("an intervention needs both t_star and beta_reduced")
        if t_star is not None:
            params = params.with_intervention(t_star, beta_reduced)
        return cls(label, InitialState(N=N, I0=I0, R0_init=R0_init), params, t, settings)

    def __repr__(self) -> str:
        return f"Scenario({self.label!r}, status={self._status.value})"

    @property
    def status(self) -> ScenarioStatus:
        return self._status

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._outcome

    @property
    def R0(self) -> float:
        return self.params.R0

    def run(self) -> Outcome:
        """Integrate the model; integration problems are recorded, not raised"""
        with self._lock:
            if self._status is not ScenarioStatus.CONFIGURED:
                raise ScenarioStateError(
                    f"Scenario '{self.label}' has already been run ({self._status.value})"
                )
            self._status = ScenarioStatus.RUNNING
        try:
            trajectory = integrate(self.params, self.initial_state, self.t, self.settings)
        except IntegrationFailure as e:
            self._outcome = Failed(e)
            self._status = ScenarioStatus.FAILED
        else:
            self._outcome = Completed(trajectory)
            self._status = ScenarioStatus.COMPLETED
        return self._outcome

    @property
    def trajectory(self) -> Trajectory:
        if self._status is not ScenarioStatus.COMPLETED:
            raise ScenarioStateError(
                f"Scenario '{self.label}' has no trajectory ({self._status.value})"
            )
        return self._outcome.trajectory

    @property
    def failure(self) -> Optional[IntegrationFailure]:
        if isinstance(self._outcome, Failed):
            return self._outcome.error
        return None

    @property
    def summary(self) -> EpidemicSummary:
        """Epidemic summary, computed on first access and cached"""
        if self._summary is None:
            self._summary = summarize(self.trajectory, self.params,
                                      self.settings.conservation_tolerance)
        return self._summary

    def print_summary(self):
        """Print summary of simulation results."""
        print(f"SCENARIO: {self.label} [{self._status.value}]")
        if self._status is ScenarioStatus.FAILED:
            print(f"Integration failed: {self.failure}")
            return
        if self._status is not ScenarioStatus.COMPLETED:
            return
        s = self.summary
        print(f"Infectious period: {self.params.infectious_period:g} days")
        print(f"R0: {s.R0:.2f}" + (f" -> {s.R0_post:.2f}" if s.R0_post is not None else ""))
        print(f"Peak infected: {s.peak_infected:,.0f} on day {s.peak_time:g}")
        print(f"Final epidemic size: {s.final_epidemic_size:,.0f} ({s.attack_rate * 100:.1f}%)")
        for w in s.warnings:
            print(f"Warning: {w}")


def simulate(params: SIRParameters,
             initial_state: InitialState,
             t,
             settings: Optional[SolverSettings] = None) -> Trajectory:
    """Run a one-off scenario and return its trajectory, raising on failure"""
    sc = Scenario("simulation", initial_state, params, t, settings)
    outcome = sc.run()
    if isinstance(outcome, Failed):
        raise outcome.error
    return outcome.trajectory
