"""
===========================================================
metrics.py
Last Updated: 2026-10-18
===========================================================

Description:
    Summary statistics derived from a finished SIR trajectory.

    Defines:
        - EpidemicSummary: read-only bundle of derived metrics
        - summarize(): build an EpidemicSummary from a trajectory
        - basic_reproduction_number(): β/γ before, after, or at
          a given time of an intervention
        - conservation_drift(), is_non_decreasing(), incidence()
        - final_size_theoretical(), herd_immunity_threshold()

Notes:
    - final_epidemic_size is R at the last sampled time, i.e.
      cumulative recoveries over the simulated interval.
    - Conservation drift beyond tolerance raises a
      ConservationWarning and is recorded on the summary; it is
      a diagnostic, not a failure.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import warnings
import numpy as np
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Tuple
from scipy.optimize import brentq

from .errors import ConservationWarning, InvalidParameters
from .parameters import SIRParameters

if TYPE_CHECKING:
    from .scenario import Trajectory


@dataclass(frozen=True)
class EpidemicSummary:
    """
    Derived metrics for one completed scenario.

    Attributes:
    -----------
    R0: float
        Basic reproduction number β/γ with the initial β
    R0_pre, R0_post: float
        β/γ before and after the change in transmission;
        R0_post is None when β never changes
    final_epidemic_size: float
        R at the final sampled time
    attack_rate: float
        final_epidemic_size / N
    peak_infected, peak_time: float
        Maximum of I and the first time it is reached
    epidemic_duration: float
        Time from the start until I falls below 1% of the peak
        (the full interval if it never does)
    max_conservation_drift: float
        max |S + I + R - N| over the trajectory
    warnings: tuple of str
        Diagnostics raised while summarizing
    """
    R0: float
    R0_pre: float
    R0_post: Optional[float]
    final_epidemic_size: float
    attack_rate: float
    peak_infected: float
    peak_time: float
    epidemic_duration: float
    max_conservation_drift: float
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "R0": self.R0,
            "R0_pre": self.R0_pre,
            "R0_post": self.R0_post,
            "final_epidemic_size": self.final_epidemic_size,
            "attack_rate": self.attack_rate,
            "peak_infected": self.peak_infected,
            "peak_time": self.peak_time,
            "epidemic_duration": self.epidemic_duration,
            "max_conservation_drift": self.max_conservation_drift,
            "warnings": "; ".join(self.warnings),
        }


def basic_reproduction_number(params: SIRParameters,
                              phase: str = "pre",
                              t: Optional[float] = None) -> float:
    """
    β/γ for the requested phase.

    phase="pre": β in force at the start
    phase="post": β after the last change (same as "pre" if β is constant)
    phase="current": β(t) at time t
    """
    schedule = params.rate_schedule
    if phase == "pre":
        return schedule.initial_beta / params.gamma
    if phase == "post":
        return schedule.final_beta / params.gamma
    if phase == "current":
        if t is None:
            raise InvalidParameters("phase='current' requires a time t")
        return schedule.beta_at(t) / params.gamma
    raise InvalidParameters("phase must be 'pre', 'post' or 'current'")


def conservation_drift(trajectory: "Trajectory", N: float) -> np.ndarray:
    """|S + I + R - N| at every sampled time"""
    return np.abs(trajectory.S + trajectory.I + trajectory.R - N)


def is_non_decreasing(values: np.ndarray, atol: float = 0.0) -> bool:
    """True if consecutive values never drop by more than atol"""
    values = np.asarray(values, dtype=float)
    if values.size < 2:
        return True
    return bool(np.all(np.diff(values) >= -atol))


def incidence(trajectory: "Trajectory") -> np.ndarray:
    """New infections per sampling interval (≈ -ΔS); first entry is 0"""
    out = np.zeros_like(trajectory.S)
    out[1:] = np.maximum(trajectory.S[:-1] - trajectory.S[1:], 0.0)
    return out


def epidemic_duration(t: np.ndarray, I: np.ndarray, fraction: float = 0.01) -> float:
    """Time until I drops below `fraction` of its peak after the peak"""
    peak_idx = int(np.argmax(I))
    threshold = fraction * I[peak_idx]
    end_idx = np.where(I[peak_idx:] < threshold)[0]
    if len(end_idx) > 0:
        return float(t[peak_idx + end_idx[0]] - t[0])
    return float(t[-1] - t[0])


def final_size_theoretical(R0: float) -> float:
    """
    Fraction of the population ever infected as t -> inf for a fully
    susceptible start, the root of z = 1 - exp(-R0 z) in (0, 1].
    Zero when R0 <= 1.
    """
    if R0 <= 0:
        raise InvalidParameters(f"R0 must be positive, got {R0}")
    if R0 <= 1:
        return 0.0
    # f(z) > 0 just above 0 and f(1) = -exp(-R0) < 0
    return float(brentq(lambda z: z - (1.0 - np.exp(-R0 * z)), 1e-12, 1.0))


def herd_immunity_threshold(R0: float) -> float:
    """Immune fraction above which R_eff < 1: 1 - 1/R0 (0 if R0 <= 1)"""
    if R0 <= 0:
        raise InvalidParameters(f"R0 must be positive, got {R0}")
    return max(0.0, 1.0 - 1.0 / R0)


def summarize(trajectory: "Trajectory",
              params: SIRParameters,
              conservation_tolerance: float = 1e-3) -> EpidemicSummary:
    """Compute the EpidemicSummary for a completed trajectory"""
    t, I, R = trajectory.t, trajectory.I, trajectory.R
    peak_idx = int(np.argmax(I))
    final_size = float(R[-1])

    drift = conservation_drift(trajectory, params.N)
    max_drift = float(np.max(drift))
    notes = []
    if max_drift > conservation_tolerance:
        worst = int(np.argmax(drift))
        msg = (f"S + I + R deviates from N={params.N:g} by {max_drift:.3g} "
               f"at t={t[worst]:g} (tolerance {conservation_tolerance:g})")
        warnings.warn(msg, ConservationWarning, stacklevel=2)
        notes.append(msg)

    schedule = params.rate_schedule
    return EpidemicSummary(
        R0=params.R0,
        R0_pre=basic_reproduction_number(params, "pre"),
        R0_post=None if schedule.is_constant else basic_reproduction_number(params, "post"),
        final_epidemic_size=final_size,
        attack_rate=final_size / params.N,
        peak_infected=float(I[peak_idx]),
        peak_time=float(t[peak_idx]),
        epidemic_duration=epidemic_duration(t, I),
        max_conservation_drift=max_drift,
        warnings=tuple(notes),
    )
