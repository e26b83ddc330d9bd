"""Finite-difference checks for Tape gradients."""

from __future__ import annotations

import numpy as np

from .tape import NodeId, Tape


def numerical_gradient(tape: Tape, leaf: NodeId, output: NodeId, eps: float = 1e-6) -> np.ndarray:
    """Central-difference gradient of a scalar ``output`` with respect to ``leaf``.

    Each element of the leaf is nudged by ±eps and the tape re-evaluated. The
    leaf's original value is restored and the tape left evaluated at it.

    Args:
        tape:   A compiled tape whose leaves are all set.
        leaf:   Var node to perturb.
        output: Node with a 0-d (scalar) value.
        eps:    Perturbation size.

    Returns:
        Array shaped like the leaf value.
    """
    base = tape.get_val(leaf)
    slopes = np.zeros_like(base)
    for i in np.ndindex(base.shape):
        bumped = base.copy()
        bumped[i] += eps
        tape.set_val(leaf, bumped)
        tape.eval()
        up = float(tape.get_val(output))

        bumped[i] -= 2 * eps
        tape.set_val(leaf, bumped)
        tape.eval()
        down = float(tape.get_val(output))

        slopes[i] = (up - down) / (2 * eps)

    tape.set_val(leaf, base)
    tape.eval()
    return slopes


def max_gradient_error(tape: Tape, leaf: NodeId, output: NodeId, eps: float = 1e-6) -> float:
    """Largest absolute gap between grad() and the finite-difference gradient."""
    tape.eval()
    tape.grad(output)
    analytic = tape.get_grad(leaf)
    numeric = numerical_gradient(tape, leaf, output, eps)
    return float(np.max(np.abs(analytic - numeric)))
