"""
Reverse-mode automatic differentiation on an explicit computation graph.

The tape is an arena: nodes live in one append-only list and refer to their
operands by list index, never by object reference. Node ids therefore stay
valid for the lifetime of the tape, and because every builder only accepts
ids that already exist, edges always point from older to newer nodes.

Lifecycle:
    1. build      var / add_vec / mult_mat / sigma / relu / loss
    2. compile()  cache a topological order (Kahn's algorithm)
    3. set_val()  assign every Var leaf
    4. eval()     forward pass, repeatable after changing leaves
    5. grad(out)  backward pass from a node, overwrites every gradient

Forward / backward rules (w is the gradient accumulated at the node):

    AddVec(l, r)   z = l + r            l.w += w ; r.w += w
    MultMat(m, v)  z = m · v            v.w += mᵀ·w ; m.w += outer(w, v)
    Sigma(v)       z = σ(v)             v.w += w ⊙ σ'(v)
    Relu(v)        z = max(v, 0)        v.w += w ⊙ [v > 0]
    Var            z = set externally   -
    Loss(y, a)     z = -½ Σ (y - a)²    a.w += w · (y - a)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Union

import numpy as np
from scipy.special import expit

from src.log import get_logger

logger = get_logger(__name__)

NodeId = int


class GraphCycleError(RuntimeError):
    """The graph cannot be ordered because it contains a cycle."""


class UnsetVariableError(ValueError):
    """A Var leaf was evaluated before a value was assigned."""


# ─── Expressions ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AddVec:
    left: NodeId
    right: NodeId


@dataclass(frozen=True)
class MultMat:
    mat: NodeId
    vec: NodeId


@dataclass(frozen=True)
class Sigma:
    vec: NodeId


@dataclass(frozen=True)
class Relu:
    vec: NodeId


@dataclass(frozen=True)
class Var:
    name: str


@dataclass(frozen=True)
class Loss:
    expected: NodeId
    actual: NodeId


Expr = Union[AddVec, MultMat, Sigma, Relu, Var, Loss]


def operands(expr: Expr) -> tuple[NodeId, ...]:
    """Node ids an expression reads, in declaration order."""
    if isinstance(expr, AddVec):
        return (expr.left, expr.right)
    if isinstance(expr, MultMat):
        return (expr.mat, expr.vec)
    if isinstance(expr, (Sigma, Relu)):
        return (expr.vec,)
    if isinstance(expr, Loss):
        return (expr.expected, expr.actual)
    return ()


# ─── Elementwise functions ────────────────────────────────────────────────────


def sigma(x: np.ndarray) -> np.ndarray:
    """Logistic function 1 / (1 + e^-x), saturating without overflow."""
    return expit(x)


def sigma_deriv(x: np.ndarray) -> np.ndarray:
    """Derivative of the logistic function, σ(x)·(1 - σ(x))."""
    s = expit(x)
    return s * (1.0 - s)


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, 0.0)


def relu_deriv(x: np.ndarray) -> np.ndarray:
    return (x > 0.0).astype(np.float64)


# ─── Tape ─────────────────────────────────────────────────────────────────────


@dataclass
class Node:
    expr: Expr
    z: np.ndarray | None = None
    w: np.ndarray | None = None


@dataclass
class Tape:
    """Append-only expression graph with cached evaluation order."""

    nodes: list[Node] = field(default_factory=list)
    consumers: list[list[NodeId]] = field(default_factory=list)
    order: list[NodeId] = field(default_factory=list)
    _compiled_size: int = field(default=-1, init=False, repr=False)
    _evaluated: bool = field(default=False, init=False, repr=False)

    # ── Builders ──────────────────────────────────────────────────────────

    def _push(self, expr: Expr) -> NodeId:
        for operand in operands(expr):
            if not 0 <= operand < len(self.nodes):
                raise IndexError(f"Unknown node id {operand} (tape has {len(self.nodes)} nodes).")
        new = len(self.nodes)
        self.nodes.append(Node(expr))
        self.consumers.append([])
        for operand in operands(expr):
            self.consumers[operand].append(new)
        self._evaluated = False
        return new

    def var(self, name: str) -> NodeId:
        """Introduce a free variable; assign it with set_val() before eval()."""
        return self._push(Var(name))

    def add_vec(self, left: NodeId, right: NodeId) -> NodeId:
        """Add two vectors together."""
        return self._push(AddVec(left, right))

    def mult_mat(self, mat: NodeId, vec: NodeId) -> NodeId:
        """Multiply a vector by a matrix."""
        return self._push(MultMat(mat, vec))

    def sigma(self, vec: NodeId) -> NodeId:
        """Apply the logistic function to every element."""
        return self._push(Sigma(vec))

    def relu(self, vec: NodeId) -> NodeId:
        """Apply ReLU to every element."""
        return self._push(Relu(vec))

    def loss(self, expected: NodeId, actual: NodeId) -> NodeId:
        """Negative half squared error; only ``actual`` receives a gradient."""
        return self._push(Loss(expected, actual))

    # ── Accessors ─────────────────────────────────────────────────────────

    def _node(self, ix: NodeId) -> Node:
        if not 0 <= ix < len(self.nodes):
            raise IndexError(f"Unknown node id {ix} (tape has {len(self.nodes)} nodes).")
        return self.nodes[ix]

    def set_val(self, ix: NodeId, value) -> None:
        self._node(ix).z = np.array(value, dtype=np.float64)
        self._evaluated = False

    def get_val(self, ix: NodeId) -> np.ndarray:
        z = self._node(ix).z
        if z is None:
            raise ValueError(f"Node {ix} has no value yet; call eval() first.")
        return z.copy()

    def get_grad(self, ix: NodeId) -> np.ndarray:
        w = self._node(ix).w
        if w is None:
            raise ValueError(f"Node {ix} has no gradient yet; call grad() first.")
        return w.copy()

    def name_of(self, ix: NodeId) -> str | None:
        expr = self._node(ix).expr
        return expr.name if isinstance(expr, Var) else None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def compile(self) -> None:
        """Compute and cache a topological order of every node.

        Raises:
            GraphCycleError: If some nodes can never become ready.
        """
        in_degree = [len(operands(node.expr)) for node in self.nodes]
        ready = deque(ix for ix, d in enumerate(in_degree) if d == 0)
        order: list[NodeId] = []
        while ready:
            ix = ready.popleft()
            order.append(ix)
            for consumer in self.consumers[ix]:
                in_degree[consumer] -= 1
                if in_degree[consumer] == 0:
                    ready.append(consumer)

        if len(order) != len(self.nodes):
            stuck = [ix for ix, d in enumerate(in_degree) if d > 0]
            raise GraphCycleError(
                f"Cycle detected: ordered {len(order)} of {len(self.nodes)} nodes; "
                f"unresolved nodes {stuck}."
            )
        self.order = order
        self._compiled_size = len(self.nodes)
        logger.debug("Compiled tape with %d nodes", len(order))

    def eval(self) -> None:
        """Forward pass over the cached order.

        Raises:
            RuntimeError:        If the graph changed since compile().
            UnsetVariableError:  If a Var has no value.
            ValueError:          On operand shape mismatches.
        """
        if self._compiled_size != len(self.nodes):
            raise RuntimeError("Tape must be compiled after its last node was added.")
        for ix in self.order:
            node = self.nodes[ix]
            node.z = self._forward(ix, node.expr)
        self._evaluated = True

    def _forward(self, ix: NodeId, expr: Expr) -> np.ndarray:
        if isinstance(expr, Var):
            z = self.nodes[ix].z
            if z is None:
                raise UnsetVariableError(f"Variable '{expr.name}' (node {ix}) was never set.")
            return z

        if isinstance(expr, AddVec):
            left, right = self.nodes[expr.left].z, self.nodes[expr.right].z
            if left.shape != right.shape:
                raise ValueError(
                    f"AddVec node {ix}: shapes {left.shape} and {right.shape} differ."
                )
            return left + right

        if isinstance(expr, MultMat):
            mat, vec = self.nodes[expr.mat].z, self.nodes[expr.vec].z
            if mat.ndim != 2 or vec.ndim != 1 or mat.shape[1] != vec.shape[0]:
                raise ValueError(
                    f"MultMat node {ix}: cannot multiply {mat.shape} matrix by {vec.shape} vector."
                )
            return mat @ vec

        if isinstance(expr, Sigma):
            return sigma(self.nodes[expr.vec].z)

        if isinstance(expr, Relu):
            return relu(self.nodes[expr.vec].z)

        expected, actual = self.nodes[expr.expected].z, self.nodes[expr.actual].z
        if expected.shape != actual.shape:
            raise ValueError(
                f"Loss node {ix}: expected {expected.shape} and actual {actual.shape} differ."
            )
        diff = expected - actual
        return np.array(-0.5 * float(np.sum(diff * diff)))

    def grad(self, output: NodeId) -> None:
        """Backward pass from ``output``, seeding its gradient with ones.

        Every node's gradient is reset first, then contributions are summed
        into operands so nodes with several consumers get the total.

        Raises:
            RuntimeError: If eval() has not run since the last change.
        """
        if not self._evaluated:
            raise RuntimeError("Tape must be evaluated before computing gradients.")
        for node in self.nodes:
            node.w = np.zeros_like(node.z)
        out = self._node(output)
        out.w = np.ones_like(out.z)

        for ix in reversed(self.order):
            node = self.nodes[ix]
            self._backward(node.expr, node.w)

    def _backward(self, expr: Expr, w: np.ndarray) -> None:
        nodes = self.nodes
        if isinstance(expr, AddVec):
            nodes[expr.left].w += w
            nodes[expr.right].w += w
        elif isinstance(expr, MultMat):
            mat, vec = nodes[expr.mat], nodes[expr.vec]
            vec.w += mat.z.T @ w
            mat.w += np.outer(w, vec.z)
        elif isinstance(expr, Sigma):
            nodes[expr.vec].w += w * sigma_deriv(nodes[expr.vec].z)
        elif isinstance(expr, Relu):
            nodes[expr.vec].w += w * relu_deriv(nodes[expr.vec].z)
        elif isinstance(expr, Loss):
            actual = nodes[expr.actual]
            actual.w += float(w) * (nodes[expr.expected].z - actual.z)


# ─── Example ──────────────────────────────────────────────────────────────────


def example() -> tuple[Tape, dict[str, NodeId]]:
    """Build, evaluate and differentiate a one-layer ReLU regression graph.

    Returns:
        (tape, ids) where ids maps 'a0', 'w1', 'b1', 'a1', 'y', 'loss' to node ids.

    Examples:
        >>> t, ids = example()
        >>> t.get_val(ids['a1']).tolist()
        [7.0, 13.0]
        >>> float(t.get_val(ids['loss']))
        -1.0
    """
    t = Tape()
    a0 = t.var("a0")
    w1 = t.var("w1")
    b1 = t.var("b1")
    m1 = t.mult_mat(w1, a0)
    z1 = t.add_vec(m1, b1)
    a1 = t.relu(z1)
    y = t.var("y")
    loss = t.loss(y, a1)

    t.compile()

    t.set_val(a0, [1.0, 2.0, 3.0])
    t.set_val(w1, [[1.0, 1.0, 1.0], [2.0, 2.0, 2.0]])
    t.set_val(b1, [1.0, 1.0])
    t.set_val(y, [6.0, 12.0])

    t.eval()
    t.grad(loss)

    return t, {"a0": a0, "w1": w1, "b1": b1, "a1": a1, "y": y, "loss": loss}
