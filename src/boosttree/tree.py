"""
Regression trees grown on first-order gradient statistics.

A tree is a nested structure of Leaf and Split nodes. Each Split owns its two
children; nodes are never shared between trees and never mutated after the
builder returns them.

Split search follows the exact greedy algorithm of XGBoost with unit hessians
and no regularisation: for a candidate partition (L, R) of a node's samples,

    gain = G_L² / (n_L + ε) + G_R² / (n_R + ε) - G² / (n + ε),

where G is the gradient sum and n the sample count. Leaves predict the mean
gradient G / (n + ε).

References:
- Chen, T., & Guestrin, C. (2016). XGBoost: A scalable tree boosting system. KDD.
- Hastie, T., Tibshirani, R., & Friedman, J. (2009). The Elements of Statistical
  Learning (2nd ed.), Section 9.2.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import logging
import numpy as np

from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)

EPSILON = 1e-10  # Smoothing term in every gain / leaf-value denominator


@dataclass(frozen=True)
class Leaf:
    """Terminal node holding the scalar correction for samples routed to it."""
    value: float


@dataclass(frozen=True)
class Split:
    """Internal node: rows with x[feature_index] <= threshold go left, the rest go right."""
    feature_index: int
    threshold: float
    left: "DecisionNode"
    right: "DecisionNode"


DecisionNode = Union[Leaf, Split]

# A leaf, or the (feature_index, threshold) of a split whose two subtrees follow it
PreorderEntry = Union[Leaf, Tuple[int, float]]


def from_preorder(plan: Sequence[PreorderEntry]) -> DecisionNode:
    """
    Assemble a tree from its nodes listed in depth-first pre-order
    (node, left subtree, right subtree).
    """
    built: List[DecisionNode] = []
    for entry in reversed(plan):
        if isinstance(entry, Leaf):
            built.append(entry)
        else:
            feature_index, threshold = entry
            left = built.pop()
            right = built.pop()
            built.append(Split(feature_index, threshold, left, right))
    return built[-1]


@dataclass
class SplitCandidate:
    """Best split found for a node during the search."""
    feature_index: int
    threshold: float
    gain: float
    left_indices: np.ndarray
    right_indices: np.ndarray


class TreeBuilder:
    """
    Greedy depth-first tree construction over gradient statistics.

    The builder works on index arrays into one read-only feature matrix, so
    growing a node never copies rows. Candidate splits for a feature are evaluated
    in a single vectorised pass over the samples sorted by that feature.
    """

    def __init__(self, max_depth: int = 4, min_child_weight: float = 1):
        """
        Args:
            max_depth: Nodes at this depth always become leaves.
            min_child_weight: Nodes with fewer samples become leaves.
        """
        self.max_depth = max_depth
        self.min_child_weight = min_child_weight

    def build(
        self,
        X: np.ndarray,
        gradients: np.ndarray,
        depth: int = 0
    ) -> DecisionNode:
        """
        Build a tree fitting the given gradients.

        Args:
            X: Feature matrix, shape (n_samples, n_features).
            gradients: Per-sample gradients, shape (n_samples,).
            depth: Depth of the root being built (0 for a fresh tree).

        Returns:
            Root node of the tree.
        """
        X = np.asarray(X, dtype=float)
        gradients = np.asarray(gradients, dtype=float)
        if X.ndim != 2 or gradients.ndim != 1 or X.shape[0] != gradients.shape[0]:
            raise InvalidInputError(
                f"X and gradients have incompatible shapes: {X.shape} vs {gradients.shape}"
            )
        return self._build(X, gradients, np.arange(X.shape[0]), depth)

    def _build(
        self,
        X: np.ndarray,
        gradients: np.ndarray,
        indices: np.ndarray,
        depth: int
    ) -> DecisionNode:
        # Expand nodes in pre-order, then assemble bottom-up
        plan: List[PreorderEntry] = []
        stack: List[Tuple[np.ndarray, int]] = [(indices, depth)]

        while stack:
            node_indices, node_depth = stack.pop()
            node_gradients = gradients[node_indices]
            sum_grad = float(np.sum(node_gradients))
            count = len(node_indices)

            if (node_depth >= self.max_depth or count < self.min_child_weight
                    or abs(sum_grad) < EPSILON):
                plan.append(Leaf(value=sum_grad / (count + EPSILON)))
                continue

            best = self._find_best_split(X, node_gradients, node_indices, sum_grad)

            if best is None or best.gain < EPSILON:
                logger.debug(
                    f"No useful split at depth {node_depth} ({count} samples), making a leaf"
                )
                plan.append(Leaf(value=sum_grad / (count + EPSILON)))
                continue

            plan.append((best.feature_index, best.threshold))
            stack.append((best.right_indices, node_depth + 1))
            stack.append((best.left_indices, node_depth + 1))

        return from_preorder(plan)

    def _find_best_split(
        self,
        X: np.ndarray,
        node_gradients: np.ndarray,
        indices: np.ndarray,
        sum_grad: float
    ) -> Optional[SplitCandidate]:
        """
        Exhaustive search over features and boundaries between distinct values.

        Only strictly better gains replace the current best, so ties go to the
        lower feature index and then to the smaller threshold.
        """
        count = len(indices)
        if count < 2:
            return None

        parent_score = sum_grad ** 2 / (count + EPSILON)
        left_count = np.arange(1, count, dtype=float)
        right_count = count - left_count

        best_gain = 0.0
        best: Optional[SplitCandidate] = None

        for feature_index in range(X.shape[1]):
            values = X[indices, feature_index]
            order = np.argsort(values, kind="stable")
            sorted_values = values[order]

            # Boundary i separates sorted positions [0..i] from [i+1..]
            left_sum = np.cumsum(node_gradients[order])[:-1]
            right_sum = sum_grad - left_sum
            gains = (
                left_sum ** 2 / (left_count + EPSILON)
                + right_sum ** 2 / (right_count + EPSILON)
                - parent_score
            )
            # Equal neighbours admit no separating threshold
            gains[sorted_values[:-1] == sorted_values[1:]] = -np.inf

            pos = int(np.argmax(gains))
            if gains[pos] > best_gain:
                best_gain = float(gains[pos])
                sorted_indices = indices[order]
                best = SplitCandidate(
                    feature_index=feature_index,
                    threshold=float((sorted_values[pos] + sorted_values[pos + 1]) / 2),
                    gain=best_gain,
                    left_indices=sorted_indices[:pos + 1],
                    right_indices=sorted_indices[pos + 1:],
                )

        return best


# ===========================
# Traversal
# ===========================

def traverse(x: Sequence[float], node: DecisionNode) -> float:
    """
    Route one feature vector to a leaf and return the leaf value.

    The comparison is inclusive: x[feature_index] == threshold goes left.

    Raises:
        InvalidInputError: If a split on the path uses a feature index the
            vector does not have.
    """
    while isinstance(node, Split):
        if node.feature_index >= len(x):
            raise InvalidInputError(
                f"Split on feature {node.feature_index} but input has {len(x)} features"
            )
        node = node.left if x[node.feature_index] <= node.threshold else node.right
    return node.value


def predict_tree(node: DecisionNode, X: np.ndarray) -> np.ndarray:
    """
    Vectorised traverse over the rows of X.

    Args:
        node: Root of the tree.
        X: Features, shape (n_samples, n_features).

    Returns:
        Leaf value reached by each row, shape (n_samples,).
    """
    out = np.empty(X.shape[0], dtype=float)
    stack: List[Tuple[DecisionNode, np.ndarray]] = [(node, np.arange(X.shape[0]))]

    while stack:
        current, rows = stack.pop()
        if rows.size == 0:
            continue
        if isinstance(current, Leaf):
            out[rows] = current.value
            continue
        if current.feature_index >= X.shape[1]:
            raise InvalidInputError(
                f"Split on feature {current.feature_index} but input has {X.shape[1]} features"
            )
        go_left = X[rows, current.feature_index] <= current.threshold
        stack.append((current.right, rows[~go_left]))
        stack.append((current.left, rows[go_left]))

    return out


# ===========================
# Structure Inspection
# ===========================

def iter_nodes(root: DecisionNode) -> Iterator[Tuple[DecisionNode, int]]:
    """Yield (node, depth) pairs in depth-first pre-order."""
    stack: List[Tuple[DecisionNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if isinstance(node, Split):
            stack.append((node.right, depth + 1))
            stack.append((node.left, depth + 1))


def tree_depth(root: DecisionNode) -> int:
    """Depth of the deepest node (0 for a single leaf)."""
    return max(depth for _, depth in iter_nodes(root))


def count_splits(root: DecisionNode) -> int:
    """Number of internal nodes in the tree."""
    return sum(1 for node, _ in iter_nodes(root) if isinstance(node, Split))


def feature_importance(trees: Sequence[DecisionNode]) -> List[int]:
    """
    Count how many internal nodes split on each feature across all trees.

    Args:
        trees: Tree roots.

    Returns:
        List of length 1 + (largest feature index used by any split), empty when
        no tree has a split. Entry i is the number of splits on feature i.
    """
    used = [
        node.feature_index
        for root in trees
        for node, _ in iter_nodes(root)
        if isinstance(node, Split)
    ]
    if not used:
        return []

    counts = [0] * (max(used) + 1)
    for feature_index in used:
        counts[feature_index] += 1
    return counts
