"""
Tunable hyper-parameters shared by the Easy21 learners.

Defaults reproduce the reference runs:
    TD(λ) prediction  λ = 0.5
    TD(λ) control     λ = 0.6, ε = 1 / (10 + N(s) / 100_000)
    Approximate TD(λ) λ = 0.1, α = 1e-4 fixed, ε = 0.05 fixed
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LearnerConfig:
    """Hyper-parameters for every learner in src.solvers.

    Attributes:
        td_lambda_prediction: Trace decay for TD(λ) prediction.
        td_lambda_control:    Trace decay for TD(λ) (SARSA(λ)) control.
        approx_lambda:        Trace decay for linear TD(λ) control.
        approx_alpha:         Fixed step size for linear TD(λ) control.
        approx_epsilon:       Fixed exploration rate for linear TD(λ) control.
        epsilon_visit_scale:  Visit-count scale N_s in ε = 1 / (10 + N / N_s)
                              used by the tabular control learners.
        rms_every:            Episodes between refreshes of the cached RMS
                              error of the control learners.
    """

    td_lambda_prediction: float = 0.5
    td_lambda_control: float = 0.6
    approx_lambda: float = 0.1
    approx_alpha: float = 1e-4
    approx_epsilon: float = 0.05
    epsilon_visit_scale: float = 100_000.0
    rms_every: int = 1000

    def __post_init__(self) -> None:
        for name in ("td_lambda_prediction", "td_lambda_control", "approx_lambda"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}.")
        if not 0.0 <= self.approx_epsilon <= 1.0:
            raise ValueError(f"approx_epsilon must be in [0, 1], got {self.approx_epsilon}.")
        if self.approx_alpha <= 0.0:
            raise ValueError(f"approx_alpha must be positive, got {self.approx_alpha}.")
        if self.epsilon_visit_scale <= 0.0:
            raise ValueError(
                f"epsilon_visit_scale must be positive, got {self.epsilon_visit_scale}."
            )
        if self.rms_every < 1:
            raise ValueError(f"rms_every must be at least 1, got {self.rms_every}.")


DEFAULT_CONFIG: LearnerConfig = LearnerConfig()
