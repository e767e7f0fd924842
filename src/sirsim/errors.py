"""
===========================================================
errors.py
Last Updated: 2026-10-18
===========================================================

Description:
    Error and warning types raised by the SIR scenario tools.

    - InvalidParameters: rejected before any integration starts
    - IntegrationFailure: the ODE solver could not cover the full
      time grid; carries the offending time and the last good state
    - ScenarioStateError: a scenario was used outside its lifecycle
    - ConservationWarning: soft diagnostic when S + I + R drifts from N
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from typing import Optional


class SIRError(Exception):
    """Base class for sirsim errors"""


class InvalidParameters(SIRError, ValueError):
    """Raised when model inputs are not physically meaningful"""


class ScenarioStateError(SIRError, RuntimeError):
    """Raised when a scenario is run twice or read before completing"""


class IntegrationFailure(SIRError, RuntimeError):
    """
    Raised when the integrator cannot produce a trajectory for every
    requested time point.

    Attributes
    ----------
    time : float or None
        First requested time that could not be produced (or the time at
        which an invalid value was detected)
    last_state : np.ndarray or None
        Last [S, I, R] that was produced successfully
    partial : dict or None
        Incomplete output {"t", "S", "I", "R", "complete": False}, kept only
        for diagnostics
    """

    def __init__(self,
                 message: str,
                 time: Optional[float] = None,
                 last_state: Optional[np.ndarray] = None,
                 partial: Optional[dict] = None):
        super().__init__(message)
        self.reason = message
        self.time = time
        self.last_state = last_state
        self.partial = partial

    def __str__(self) -> str:
        if self.time is None:
            return self.reason
        return f"{self.reason} (at t={self.time:g})"


class ConservationWarning(UserWarning):
    """S + I + R deviated from N by more than the allowed tolerance"""
