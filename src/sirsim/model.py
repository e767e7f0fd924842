"""
===========================================================
model.py
Last Updated: 2026-10-18
===========================================================
SIR (Susceptible-Infected-Recovered) right-hand side

A basic compartmental epidemiological model that divides
a population into three compartments:
- S: Susceptible individuals
- I: Infected (and infectious) individuals
- R: Recovered (and immune) individuals

This model assumes:
- Homogeneous mixing (everyone has equal contact probability)
- No births, deaths, or migrations (closed population)
- Permanent immunity after recovery
- Frequency-dependent transmission with a possibly
  time-varying transmission rate β(t)

-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np

from .parameters import SIRParameters


def sir_rhs(t: float, y: np.ndarray, params: SIRParameters) -> np.ndarray:
    """
    Compute derivatives for the SIR model.

    Parameters:
    -----------
    t: float
        Current time, used only to look up β(t)
    y: array-like
        Current state [S, I, R]
    params: SIRParameters
        Rates and the fixed population size N. N is taken from the
        parameters, never from S + I + R, so integration error in the
        state cannot leak into the force of infection.

    Returns:
    --------
    dydt: np.ndarray
        Derivatives [dS/dt, dI/dt, dR/dt]
    """
    S, I, R = y
    new_infections = params.beta_at(t) * S * I / params.N
    recoveries = params.gamma * I
    return np.array([-new_infections, new_infections - recoveries, recoveries])


def force_of_infection(t: float, I: float, params: SIRParameters) -> float:
    """Per-susceptible infection rate λ(t) = β(t) I / N"""
    return params.beta_at(t) * I / params.N


def effective_reproduction_number(t: float, S: float, params: SIRParameters) -> float:
    """
    R_eff(t) = β(t) / γ * S(t) / N

    The epidemic grows while R_eff > 1 and declines once it drops below 1.
    """
    return params.beta_at(t) / params.gamma * S / params.N
