"""
sirsim: deterministic SIR scenarios with time-varying transmission.

    from sirsim import Scenario
    sc = Scenario.from_values("baseline", N=100_000, I0=1, beta=0.3, gamma=0.1, t=range(161))
    sc.run()
    sc.summary.final_epidemic_size
"""
from .errors import (
    ConservationWarning,
    IntegrationFailure,
    InvalidParameters,
    ScenarioStateError,
    SIRError,
)
from .metrics import EpidemicSummary, basic_reproduction_number, summarize
from .model import sir_rhs
from .parameters import (
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
from .scenario import Completed, Failed, Scenario, ScenarioStatus, Trajectory, integrate, simulate

__version__ = "0.1.0"
