"""
Fully connected sigmoid network built on a Tape.

Layer k computes ``a_k = σ(W_k · a_{k-1} + b_k)``; the network output feeds a
``loss(y, a_L)`` node. The tape is built and compiled once; each forward or
training call only rewrites the Var leaves and re-runs eval()/grad().

The loss node holds the *negated* half squared error, so its gradient points
towards smaller error and training moves parameters along it:
``p <- p + lr · ∂loss/∂p``.
"""

from __future__ import annotations

import numpy as np

from .tape import NodeId, Tape


class Net:
    """Multi-layer perceptron with sigmoid activations.

    Args:
        layers: Layer widths, input first, output last (at least two).
        rng:    Generator used for weight initialisation; a fresh default
                generator when None.

    Examples:
        >>> net = Net([3, 4, 2], rng=np.random.default_rng(0))
        >>> net.forward(np.zeros(3)).shape
        (2,)
    """

    def __init__(self, layers: list[int], rng: np.random.Generator | None = None) -> None:
        if len(layers) < 2:
            raise ValueError(f"Expected at least 2 layers, found {len(layers)}.")
        if any(width < 1 for width in layers):
            raise ValueError(f"Layer widths must be positive, got {layers}.")
        if rng is None:
            rng = np.random.default_rng()

        self.layers = list(layers)
        self.tape = Tape()
        t = self.tape

        a = t.var("a0")
        self.input: NodeId = a
        self.parameters: list[tuple[NodeId, NodeId]] = []
        for layer in range(1, len(layers)):
            b = t.var(f"b{layer}")
            w = t.var(f"w{layer}")
            a = t.sigma(t.add_vec(t.mult_mat(w, a), b))
            self.parameters.append((w, b))

        self.activation: NodeId = a
        self.expected: NodeId = t.var("y")
        self.output: NodeId = t.loss(self.expected, a)
        t.compile()

        for (w, b), fan_in, fan_out in zip(self.parameters, layers[:-1], layers[1:]):
            t.set_val(w, rng.normal(0.0, 1.0 / np.sqrt(fan_in), size=(fan_out, fan_in)))
            t.set_val(b, np.zeros(fan_out))
        t.set_val(self.expected, np.zeros(layers[-1]))

    def _run(self, x: np.ndarray, y: np.ndarray | None) -> None:
        self.tape.set_val(self.input, x)
        if y is not None:
            self.tape.set_val(self.expected, y)
        self.tape.eval()

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Output activations for input ``x``."""
        self._run(x, None)
        return self.tape.get_val(self.activation)

    def loss(self, x: np.ndarray, y: np.ndarray) -> float:
        """Negated half squared error of the prediction for ``x`` against ``y``."""
        self._run(x, y)
        return float(self.tape.get_val(self.output))

    def train_step(self, x: np.ndarray, y: np.ndarray, learning_rate: float) -> float:
        """One gradient step on a single example.

        Returns:
            The loss before the update.
        """
        self._run(x, y)
        before = float(self.tape.get_val(self.output))
        self.tape.grad(self.output)
        for w, b in self.parameters:
            for ix in (w, b):
                self.tape.set_val(ix, self.tape.get_val(ix) + learning_rate * self.tape.get_grad(ix))
        return before

    def weights(self) -> list[tuple[np.ndarray, np.ndarray]]:
        """Copies of every (W, b) pair, input layer first."""
        return [(self.tape.get_val(w), self.tape.get_val(b)) for w, b in self.parameters]
