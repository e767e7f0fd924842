"""
===========================================================
experiments.py
Last Updated: 2026-10-18
===========================================================

Description:
    Utilities for running and comparing SIR scenarios: batch
    runs, grid search over (beta, gamma), intervention timing
    sweeps, aligned multi-scenario series and tidy summary
    tables as DataFrames.

Example Usage:
    from sirsim.experiments import intervention_sweep, run_scenarios, compare
    scenarios = run_scenarios(intervention_sweep([15, 30, 45], beta=0.3,
                              beta_reduced=0.2, gamma=0.1, N=1e5, I0=1, t=t))
    df = compare(scenarios, compartment="I")

Notes:
    - Scenarios share no mutable state, so run_scenarios can run
      them on a thread pool; a failed scenario never affects its
      siblings.
    - Running this module prints the walkthrough summary table.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
import pandas as pd
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence

from .metrics import incidence
from .parameters import InitialState, SIRParameters, SolverSettings, WalkthroughDefaults
from .scenario import Scenario, ScenarioStatus


def run_scenarios(scenarios: Iterable[Scenario], max_workers: Optional[int] = None) -> List[Scenario]:
    """
    Run every scenario and return them in the order given.
    Integration failures are recorded on the scenario, not raised.
    """
    scenarios = list(scenarios)
    if max_workers == 1 or len(scenarios) <= 1:
        for sc in scenarios:
            sc.run()
        return scenarios
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # list() re-raises anything unexpected from a worker
        list(pool.map(lambda sc: sc.run(), scenarios))
    return scenarios


def compare(scenarios: Sequence[Scenario], compartment: str = "I") -> pd.DataFrame:
    """
    Align one compartment of several completed scenarios into a single
    DataFrame indexed by time, one column per scenario label.
    All scenarios must share the same time grid.
    """
    if not scenarios:
        raise ValueError("need at least one scenario to compare")
    names = [sc.label for sc in scenarios]
    if len(set(names)) != len(names):
        raise ValueError(f"scenario labels must be unique, got {names}")
    t = scenarios[0].trajectory.t
    columns = {}
    for sc in scenarios:
        traj = sc.trajectory
        if not np.array_equal(traj.t, t):
            raise ValueError(f"scenario '{sc.label}' uses a different time grid")
        columns[sc.label] = traj.compartment(compartment)
    return pd.DataFrame(columns, index=pd.Index(t, name="t"))


def summary_table(scenarios: Sequence[Scenario]) -> pd.DataFrame:
    """One row per scenario with its parameters and summary statistics"""
    records = []
    for sc in scenarios:
        rec = {
            "label": sc.label,
            "status": sc.status.value,
            "beta": sc.params.beta,
            "gamma": sc.params.gamma,
            "R0": sc.params.R0,
        }
        if sc.status is ScenarioStatus.COMPLETED:
            rec.update(sc.summary.to_dict())
        elif sc.status is ScenarioStatus.FAILED:
            rec["failure"] = str(sc.failure)
        records.append(rec)
    return pd.DataFrame.from_records(records).set_index("label")


def _summarize_one(N, beta, gamma, I0, R0_init, t, settings=None):
    """Run one simulation and return a dict of summary statistics"""
    sc = Scenario(f"beta={beta:g}, gamma={gamma:g}",
                  InitialState(N=N, I0=I0, R0_init=R0_init),
                  SIRParameters(beta=beta, gamma=gamma, N=N),
                  t, settings)
    sc.run()
    rec = {"beta": float(beta), "gamma": float(gamma), "R0": float(beta / gamma)}
    if sc.status is ScenarioStatus.FAILED:
        rec["failure"] = str(sc.failure)
        return rec
    s = sc.summary
    rec.update({
        "peak_day": s.peak_time,
        "peak_infected": s.peak_infected,
        "peak_prevalence": s.peak_infected / N,
        "final_size": s.attack_rate,
        "max_incidence": float(np.max(incidence(sc.trajectory))),
    })
    return rec


def grid_sweep(
    betas,
    gammas,
    N: float,
    I0: float,
    t: np.ndarray,
    R0_init: float = 0,
    settings: Optional[SolverSettings] = None) -> pd.DataFrame:
    """
    Evaluate the SIR model across a grid of (beta, gamma) values. Returns
     a tidy pandas DataFrame with one row per parameter combo
     """
    records = []
    for b in betas:
        for g in gammas:
            rec = _summarize_one(N=N, beta=float(b), gamma=float(g), I0=I0,
                                 R0_init=R0_init, t=t, settings=settings)
            records.append(rec)
    df = pd.DataFrame.from_records(records)
    return df.sort_values(["beta", "gamma"]).reset_index(drop=True)


def beta_sweep(betas, gamma: float, N: float, I0: float, t: np.ndarray,
               R0_init: float = 0, settings: Optional[SolverSettings] = None) -> List[Scenario]:
    """Configured scenarios that differ only in beta, labelled by R0"""
    return [
        Scenario.from_values(f"R0={b / gamma:.2f} (beta={b:g})", N=N, I0=I0, beta=b,
                             gamma=gamma, t=t, R0_init=R0_init, settings=settings)
        for b in betas
    ]


def intervention_sweep(t_stars,
                       beta: float,
                       beta_reduced: float,
                       gamma: float,
                       N: float,
                       I0: float,
                       t: np.ndarray,
                       R0_init: float = 0,
                       include_baseline: bool = True,
                       settings: Optional[SolverSettings] = None) -> List[Scenario]:
    """
    Configured scenarios that reduce beta to beta_reduced at each t* in
    t_stars, plus (by default) the no-intervention baseline last.
    """
    scenarios = [
        Scenario.from_values(f"intervention at t={ts:g}", N=N, I0=I0, beta=beta, gamma=gamma,
                             t=t, R0_init=R0_init, t_star=ts, beta_reduced=beta_reduced,
                             settings=settings)
        for ts in t_stars
    ]
    if include_baseline:
        scenarios.append(Scenario.from_values("no intervention", N=N, I0=I0, beta=beta,
                                              gamma=gamma, t=t, R0_init=R0_init,
                                              settings=settings))
    return scenarios


def walkthrough_scenarios(defaults: Optional[WalkthroughDefaults] = None) -> List[Scenario]:
    """The standard set of scenarios compared in the SIR walkthrough"""
    d = defaults if defaults is not None else WalkthroughDefaults()
    t = d.time_grid()
    y0 = d.initial_state()

    def make(label, beta, gamma):
        return Scenario(label, y0, d.parameters(beta=beta, gamma=gamma), t, d.solver)

    scenarios = [
        make("baseline", d.beta, d.gamma),
        make("high transmission", d.beta_high, d.gamma),
        make("long infectious period", d.beta, d.gamma_slow),
    ]
    for ts in d.intervention_times:
        params = d.parameters().with_intervention(ts, d.beta_reduced)
        scenarios.append(Scenario(f"intervention at t={ts:g}", y0, params, t, d.solver))
    return scenarios


def pivot_for_plot(df: pd.DataFrame, x: str, y: str, value: str):
    """Pivot a DataFrame to 2D arrays for plotting (heatmaps/contour)
    Return X_grid, Y_grid, Z_values
    """
    sub = df[[x, y, value]].drop_duplicates()
    x_vals = np.sort(sub[x].unique())
    y_vals = np.sort(sub[y].unique())
    Z = np.empty((len(y_vals), len(x_vals)), dtype=float) #rows: y, cols: x
    for i, gy in enumerate(y_vals):
        row = sub[sub[y] == gy].sort_values(x)
        Z[i, :] = row[value].to_numpy()
    X, Y = np.meshgrid(x_vals, y_vals)
    return X, Y, Z


if __name__ == "__main__":
    defaults = WalkthroughDefaults()
    defaults.print_summary()

    print("\nRunning walkthrough scenarios...")
    scenarios = run_scenarios(walkthrough_scenarios(defaults))
    for sc in scenarios:
        print()
        sc.print_summary()

    print("\nSUMMARY TABLE:")
    with pd.option_context("display.width", 160, "display.max_columns", 20):
        print(summary_table(scenarios)[["status", "R0", "R0_post", "peak_infected",
                                        "peak_time", "final_epidemic_size"]])
