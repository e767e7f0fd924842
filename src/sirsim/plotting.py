"""
===========================================================
plotting.py
Last Updated: 2026-10-18
===========================================================
Visualization functions for SIR scenario analysis.

This module provides plotting utilities for exploring SIR model dynamics,
including time series plots, scenario comparisons, phase portraits,
the transmission-rate schedule and the final size relation.
Functions only read trajectories and DataFrames; nothing here feeds
back into the model.
"""
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Optional, Sequence
from matplotlib.axes import Axes

from .metrics import final_size_theoretical
from .parameters import RateSchedule
from .scenario import Trajectory


def plot_trajectory(trajectory: Trajectory,
                    R0: Optional[float] = None,
                    ax: Optional[Axes] = None,
                    show: bool = True,
                    title: Optional[str] = None) -> Axes:
    """
    Plot SIR simulation results as time series.

    Parameters
    ----------
    trajectory : Trajectory
        Simulation output
    R0 : float, optional
        Basic reproduction number to display in title
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates new figure
    show : bool
        Whether to display the plot immediately
    title : str, optional
        Custom title. If None and R0 provided, uses default format

    Returns
    -------
    ax : matplotlib.axes.Axes
        The axes object with the plot
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    t = trajectory.t
    ax.plot(t, trajectory.S, 'b-', linewidth=2, label='Susceptible')
    ax.plot(t, trajectory.I, 'r-', linewidth=2, label='Infected')
    ax.plot(t, trajectory.R, 'g-', linewidth=2, label='Recovered')

    ax.set_xlabel('Time (days)', fontsize=12)
    ax.set_ylabel('Number of individuals', fontsize=12)

    if title:
        ax.set_title(title, fontsize=14)
    elif R0 is not None:
        ax.set_title(f'SIR Model ($R_0$ = {R0:.2f})', fontsize=14)
    else:
        ax.set_title('SIR Model Dynamics', fontsize=14)

    ax.legend(fontsize=11)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_comparison(series: pd.DataFrame,
                    title: str = "Infected Dynamics Comparison",
                    ylabel: str = "Infected individuals",
                    intervention_times: Sequence[float] = (),
                    ax: Optional[Axes] = None,
                    show: bool = True) -> Axes:
    """
    Plot aligned scenario series (output of experiments.compare).

    Parameters
    ----------
    series : pd.DataFrame
        Indexed by time, one column per scenario label
    title, ylabel : str
        Plot labels
    intervention_times : sequence of float
        Times to mark with vertical dashed lines
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates new figure
    show : bool
        Whether to display the plot immediately
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 7))

    index_name = series.index.name or "t"
    long = (series.rename_axis(index_name)
                  .reset_index()
                  .melt(id_vars=index_name, var_name="scenario", value_name="value"))
    sns.lineplot(data=long, x=index_name, y="value", hue="scenario",
                 linewidth=2, ax=ax)

    for ts in intervention_times:
        ax.axvline(x=ts, color='gray', linestyle='--', alpha=0.5)

    ax.set_xlabel('Time (days)', fontsize=12)
    ax.set_ylabel(ylabel, fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_phase_portrait(trajectory: Trajectory,
                        R0: Optional[float] = None,
                        N: Optional[float] = None,
                        ax: Optional[Axes] = None,
                        show: bool = True,
                        label: Optional[str] = None,
                        **plot_kwargs) -> Axes:
    """
    Plot phase portrait (S vs I). When both N and R0 are given, the
    epidemic threshold S = N / R0 (where I peaks) is drawn as well.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    default_kwargs = {'linewidth': 2, 'alpha': 0.8}
    default_kwargs.update(plot_kwargs)

    if label and R0 is not None:
        label = f'{label} ($R_0$={R0:.2f})'
    elif R0 is not None:
        label = f'$R_0$ = {R0:.2f}'

    ax.plot(trajectory.S, trajectory.I, label=label, **default_kwargs)

    if N is not None and R0 is not None:
        ax.axvline(x=N / R0, color='gray', linestyle='--',
                   linewidth=1.5, alpha=0.6,
                   label='Threshold (S = N/$R_0$)')

    ax.set_xlabel('Susceptible (S)', fontsize=12)
    ax.set_ylabel('Infected (I)', fontsize=12)
    ax.set_title('SIR Phase Portrait (S-I plane)', fontsize=14)
    ax.grid(True, alpha=0.3)

    if label or (N is not None and R0 is not None):
        ax.legend(fontsize=10)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_beta_schedule(schedule: RateSchedule,
                       t: np.ndarray,
                       ax: Optional[Axes] = None,
                       show: bool = True) -> Axes:
    """Plot β(t) on the time grid t"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 4))

    t = np.asarray(t, dtype=float)
    beta = np.array([schedule.beta_at(x) for x in t])
    ax.step(t, beta, where='post', linewidth=2, color='darkred')

    ax.set_xlabel('Time (days)', fontsize=12)
    ax.set_ylabel(r'$\beta(t)$', fontsize=12)
    ax.set_title('Transmission Rate Schedule', fontsize=14)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_final_size_relation(R0_values: np.ndarray,
                             attack_rates: np.ndarray,
                             theoretical: bool = True,
                             ax: Optional[Axes] = None,
                             show: bool = True) -> Axes:
    """
    Plot the relationship between R0 and final epidemic size.

    Parameters
    ----------
    R0_values : np.ndarray
        Array of R0 values
    attack_rates : np.ndarray
        Corresponding final attack rates (fraction of N)
    theoretical : bool
        Whether to overlay the solution of z = 1 - exp(-R0 z)
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    R0_values = np.asarray(R0_values, dtype=float)
    ax.plot(R0_values, np.asarray(attack_rates) * 100, 'o-',
            linewidth=2, markersize=8, label='Simulation')

    if theoretical:
        R0_theory = np.linspace(R0_values.min(), R0_values.max(), 100)
        attack_theory = [final_size_theoretical(r) for r in R0_theory]
        ax.plot(R0_theory, np.array(attack_theory) * 100, '--',
                linewidth=2, color='red', alpha=0.7, label='Theoretical')

    ax.axvline(x=1, color='gray', linestyle=':', linewidth=1.5, alpha=0.6)
    ax.axhline(y=0, color='gray', linestyle=':', linewidth=1.5, alpha=0.6)

    ax.set_xlabel('Basic Reproduction Number ($R_0$)', fontsize=12)
    ax.set_ylabel('Final Attack Rate (%)', fontsize=12)
    ax.set_title('Epidemic Final Size vs $R_0$', fontsize=14)
    ax.legend(fontsize=11)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()

    return ax
