"""Unit tests for sirsim.parameters."""

from __future__ import annotations

import dataclasses
import math

import numpy as np
import pytest

from sirsim.errors import InvalidParameters
from sirsim.parameters import (
    ConstantRate,
    InitialState,
    Intervention,
    PiecewiseConstantRate,
    PiecewiseLinearRate,
    SIRParameters,
    SolverSettings,
    StepAtTime,
    WalkthroughDefaults,
)


@pytest.mark.parametrize(
    ("beta", "gamma", "N"),
    [
        (0.0, 0.1, 1000),
        (-0.3, 0.1, 1000),
        (0.3, 0.0, 1000),
        (0.3, -0.1, 1000),
        (0.3, 0.1, 0),
        (0.3, 0.1, -5),
        (math.nan, 0.1, 1000),
        (0.3, math.inf, 1000),
    ],
)
def test_parameters_reject_non_positive_or_non_finite(beta: float, gamma: float, N: float) -> None:
    """Rates and population size must be positive and finite."""
    with pytest.raises(InvalidParameters):
        SIRParameters(beta=beta, gamma=gamma, N=N)


def test_invalid_parameters_is_a_value_error() -> None:
    """Callers can catch InvalidParameters as a ValueError."""
    with pytest.raises(ValueError):
        SIRParameters(beta=-1.0, gamma=0.1, N=100)


def test_parameters_are_frozen() -> None:
    """Parameter sets cannot be mutated in place."""
    params = SIRParameters(beta=0.3, gamma=0.1, N=100)
    with pytest.raises(dataclasses.FrozenInstanceError):
        params.beta = 0.5  # type: ignore[misc]


def test_with_intervention_returns_new_parameters() -> None:
    """with_intervention leaves the original parameters untouched."""
    params = SIRParameters(beta=0.3, gamma=0.1, N=100)
    reduced = params.with_intervention(t_star=30, beta_reduced=0.2)

    assert params.intervention is None
    assert reduced.intervention == Intervention(30.0, 0.2)
    assert isinstance(reduced.rate_schedule, StepAtTime)
    assert isinstance(params.rate_schedule, ConstantRate)


def test_rate_schedule_is_built_once() -> None:
    """The β(t) schedule is fixed at construction and reused on every lookup."""
    params = SIRParameters(beta=0.3, gamma=0.1, N=100).with_intervention(30, 0.2)
    schedule = params.rate_schedule

    assert params.rate_schedule is schedule
    assert params.beta_at(29.0) == 0.3
    assert params.rate_schedule is schedule
    assert params == SIRParameters(beta=0.3, gamma=0.1, N=100).with_intervention(30, 0.2)
    assert "_schedule" not in repr(params)


def test_infectious_period_is_inverse_gamma() -> None:
    """1/gamma is the mean infectious period."""
    assert SIRParameters(beta=0.3, gamma=0.05, N=100).infectious_period == pytest.approx(20.0)


def test_intervention_step_is_right_continuous() -> None:
    """The reduced rate applies from exactly t* onwards."""
    params = SIRParameters(beta=0.3, gamma=0.1, N=100).with_intervention(30, 0.2)

    assert params.beta_at(0.0) == 0.3
    assert params.beta_at(np.nextafter(30.0, 0.0)) == 0.3
    assert params.beta_at(30.0) == 0.2
    assert params.beta_at(100.0) == 0.2


@pytest.mark.parametrize(("t_star", "beta_reduced"), [(-1.0, 0.2), (10.0, 0.0), (10.0, -0.1)])
def test_intervention_validation(t_star: float, beta_reduced: float) -> None:
    """Intervention time must be non-negative and the reduced rate positive."""
    with pytest.raises(InvalidParameters):
        Intervention(t_star, beta_reduced)


def test_intervention_and_schedule_are_exclusive() -> None:
    """A parameter set takes either an intervention or a schedule."""
    with pytest.raises(InvalidParameters, match="not both"):
        SIRParameters(
            beta=0.3,
            gamma=0.1,
            N=100,
            intervention=Intervention(10, 0.2),
            schedule=ConstantRate(0.3),
        )


def test_schedule_must_match_initial_beta() -> None:
    """beta must equal the schedule's starting rate."""
    with pytest.raises(InvalidParameters, match="does not match"):
        SIRParameters(beta=0.5, gamma=0.1, N=100, schedule=ConstantRate(0.3))

    params = SIRParameters.from_schedule(StepAtTime(0.4, 0.1, 20), gamma=0.1, N=100)
    assert params.beta == 0.4


def test_piecewise_constant_segments() -> None:
    """Segments are closed-open and clipped at both ends."""
    sched = PiecewiseConstantRate(edges=[0, 10, 20], betas=[0.5, 0.25])

    assert sched.beta_at(-5.0) == 0.5
    assert sched.beta_at(0.0) == 0.5
    assert sched.beta_at(9.999) == 0.5
    assert sched.beta_at(10.0) == 0.25
    assert sched.beta_at(50.0) == 0.25
    assert sched.breakpoints() == (10.0,)
    assert sched.initial_beta == 0.5
    assert sched.final_beta == 0.25
    assert not sched.is_constant


@pytest.mark.parametrize(
    ("edges", "betas"),
    [
        ([0], []),
        ([0, 0, 10], [0.1, 0.2]),
        ([0, 10, 5], [0.1, 0.2]),
        ([0, 10], [0.1, 0.2]),
        ([0, 10], [-0.1]),
    ],
)
def test_piecewise_constant_validation(edges: list, betas: list) -> None:
    """Edges must increase strictly and match the number of rates."""
    with pytest.raises(InvalidParameters):
        PiecewiseConstantRate(edges=edges, betas=betas)


def test_piecewise_linear_interpolates() -> None:
    """β(t) is interpolated between knots and held outside them."""
    sched = PiecewiseLinearRate(times=[10, 20], betas=[0.4, 0.2])

    assert sched.beta_at(0.0) == pytest.approx(0.4)
    assert sched.beta_at(15.0) == pytest.approx(0.3)
    assert sched.beta_at(30.0) == pytest.approx(0.2)
    assert sched.breakpoints() == (10.0, 20.0)


def test_initial_state_derives_susceptibles() -> None:
    """S0 defaults to N - I0 - R0_init."""
    y0 = InitialState(N=1000, I0=10, R0_init=90)

    assert y0.S0 == 900
    np.testing.assert_array_equal(y0.as_array(), [900.0, 10.0, 90.0])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"N": 0, "I0": 0},
        {"N": 100, "I0": -1},
        {"N": 100, "I0": 1, "R0_init": -1},
        {"N": 100, "I0": 60, "R0_init": 50},
        {"N": 100, "I0": 1, "S0": 50},
        {"N": 100, "I0": 1, "S0": -99},
    ],
)
def test_initial_state_validation(kwargs: dict) -> None:
    """Inconsistent or negative compartments are rejected, never clamped."""
    with pytest.raises(InvalidParameters):
        InitialState(**kwargs)


def test_initial_state_accepts_consistent_s0() -> None:
    """An explicit S0 is accepted when the compartments sum to N."""
    assert InitialState(N=100, I0=1, R0_init=4, S0=95).S0 == 95


@pytest.mark.parametrize(
    "kwargs",
    [
        {"method": "Euler"},
        {"rtol": 0},
        {"atol": -1e-6},
        {"max_step": 0},
        {"max_evaluations": 0},
        {"negative_tolerance": -1},
        {"conservation_tolerance": 0},
    ],
)
def test_solver_settings_validation(kwargs: dict) -> None:
    """Solver settings reject unknown methods and non-positive tolerances."""
    with pytest.raises(InvalidParameters):
        SolverSettings(**kwargs)


def test_walkthrough_defaults() -> None:
    """The walkthrough uses a daily grid from 0 to 160 inclusive."""
    d = WalkthroughDefaults()
    t = d.time_grid()

    assert t.size == 161
    assert t[0] == 0.0
    assert t[-1] == 160.0
    assert d.parameters().R0 == pytest.approx(3.0)
    assert d.parameters(beta=d.beta_high).R0 == pytest.approx(6.0)
    assert d.initial_state().S0 == d.N - d.I0
