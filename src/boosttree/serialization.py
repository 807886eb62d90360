"""
Conversion of a trained ensemble to and from plain dictionaries / JSON.

Record layout::

    {
        "trees": [{"root": NODE}, ...],
        "params": {"learningRate": float, "maxDepth": int,
                   "minChildWeight": float, "numRounds": int}
    }

where NODE is either ``{"isLeaf": true, "value": float}`` or
``{"isLeaf": false, "featureIndex": int, "threshold": float,
"left": NODE, "right": NODE}``. Readers ignore keys they do not know, so
records carrying extra per-node fields (e.g. ``null`` placeholders) load fine.
"""

from numbers import Integral, Real
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .exceptions import InvalidHyperparameterError, SerializationError
from .params import BoostingParams
from .tree import DecisionNode, Leaf, PreorderEntry, from_preorder


def node_to_dict(node: DecisionNode) -> Dict[str, Any]:
    """Serialize a node and its subtree."""
    root: Dict[str, Any] = {}
    stack: List[Tuple[DecisionNode, Dict[str, Any]]] = [(node, root)]
    while stack:
        current, out = stack.pop()
        if isinstance(current, Leaf):
            out.update(isLeaf=True, value=float(current.value))
            continue
        left: Dict[str, Any] = {}
        right: Dict[str, Any] = {}
        out.update(
            isLeaf=False,
            featureIndex=int(current.feature_index),
            threshold=float(current.threshold),
            left=left,
            right=right,
        )
        stack.append((current.right, right))
        stack.append((current.left, left))
    return root


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, Real):
        raise SerializationError(f"Node field '{key}' must be a number, got {value!r}")
    return float(value)


def node_from_dict(data: Mapping[str, Any]) -> DecisionNode:
    """Deserialize a node and its subtree."""
    plan: List[PreorderEntry] = []
    stack: List[Any] = [data]

    while stack:
        current = stack.pop()
        if not isinstance(current, Mapping):
            raise SerializationError(f"Node must be a mapping, got {type(current).__name__}")
        is_leaf = current.get("isLeaf")
        if not isinstance(is_leaf, bool):
            raise SerializationError("Node is missing the boolean 'isLeaf' field")

        if is_leaf:
            plan.append(Leaf(value=_number(current, "value")))
            continue

        feature_index = current.get("featureIndex")
        if isinstance(feature_index, bool) or not isinstance(feature_index, Integral) or feature_index < 0:
            raise SerializationError(
                f"Split field 'featureIndex' must be a non-negative integer, got {feature_index!r}"
            )
        if current.get("left") is None or current.get("right") is None:
            raise SerializationError("Split node must have both 'left' and 'right' children")

        plan.append((int(feature_index), _number(current, "threshold")))
        stack.append(current["right"])
        stack.append(current["left"])

    return from_preorder(plan)


def ensemble_to_dict(trees: Sequence[DecisionNode], params: BoostingParams) -> Dict[str, Any]:
    """Serialize trees (in boosting order) together with their hyperparameters."""
    return {
        "trees": [{"root": node_to_dict(root)} for root in trees],
        "params": params.to_dict(),
    }


def ensemble_from_dict(record: Mapping[str, Any]) -> Tuple[List[DecisionNode], BoostingParams]:
    """
    Deserialize a record produced by ensemble_to_dict.

    Returns:
        (trees, params) with trees in their original order.

    Raises:
        SerializationError: If the record or any node is malformed.
    """
    if not isinstance(record, Mapping):
        raise SerializationError(f"Record must be a mapping, got {type(record).__name__}")

    raw_params = record.get("params", {})
    if not isinstance(raw_params, Mapping):
        raise SerializationError("Record field 'params' must be a mapping")
    try:
        params = BoostingParams.from_dict(raw_params)
    except InvalidHyperparameterError as exc:
        raise SerializationError(f"Invalid hyperparameters in record: {exc}") from exc

    raw_trees = record.get("trees", [])
    if not isinstance(raw_trees, list):
        raise SerializationError("Record field 'trees' must be a list")

    trees = []
    for i, entry in enumerate(raw_trees):
        if not isinstance(entry, Mapping) or "root" not in entry:
            raise SerializationError(f"Tree {i} must be a mapping with a 'root' node")
        trees.append(node_from_dict(entry["root"]))

    return trees, params
