"""
Hyperparameter configuration for the boosted tree ensemble.

Values are checked when the configuration is created; out-of-range values
raise InvalidHyperparameterError instead of being replaced by defaults.
"""

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, Dict, Mapping

from .exceptions import InvalidHyperparameterError

# Wire names used in serialized records.
_WIRE_NAMES = {
    "learning_rate": "learningRate",
    "max_depth": "maxDepth",
    "min_child_weight": "minChildWeight",
    "num_rounds": "numRounds",
}


@dataclass(frozen=True)
class BoostingParams:
    """
    Immutable training configuration.

    Attributes
    ----------
    learning_rate : float, default=0.3
        Shrinkage applied to every tree's contribution. Must be > 0.
    max_depth : int, default=4
        Hard cap on tree depth. A depth of 0 yields single-leaf trees.
    min_child_weight : float, default=1
        Nodes with fewer samples than this become leaves. Must be >= 0.
    num_rounds : int, default=100
        Number of boosting rounds, i.e. trees built. Must be >= 1.
    """
    learning_rate: float = 0.3
    max_depth: int = 4
    min_child_weight: float = 1
    num_rounds: int = 100

    def __post_init__(self):
        if isinstance(self.learning_rate, bool) or not isinstance(self.learning_rate, Real):
            raise InvalidHyperparameterError(
                f"learning_rate must be a number, got {self.learning_rate!r}"
            )
        if not self.learning_rate > 0 or self.learning_rate == float("inf"):
            raise InvalidHyperparameterError(
                f"learning_rate must be a finite number > 0, got {self.learning_rate}"
            )
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, Integral):
            raise InvalidHyperparameterError(f"max_depth must be an integer, got {self.max_depth!r}")
        if self.max_depth < 0:
            raise InvalidHyperparameterError(f"max_depth must be >= 0, got {self.max_depth}")
        if isinstance(self.min_child_weight, bool) or not isinstance(self.min_child_weight, Real):
            raise InvalidHyperparameterError(
                f"min_child_weight must be a number, got {self.min_child_weight!r}"
            )
        if not self.min_child_weight >= 0:
            raise InvalidHyperparameterError(
                f"min_child_weight must be >= 0, got {self.min_child_weight}"
            )
        if isinstance(self.num_rounds, bool) or not isinstance(self.num_rounds, Integral):
            raise InvalidHyperparameterError(f"num_rounds must be an integer, got {self.num_rounds!r}")
        if self.num_rounds < 1:
            raise InvalidHyperparameterError(f"num_rounds must be >= 1, got {self.num_rounds}")

    def to_dict(self) -> Dict[str, Any]:
        """Return the parameters keyed by their wire names, as plain Python numbers."""
        return {
            _WIRE_NAMES["learning_rate"]: float(self.learning_rate),
            _WIRE_NAMES["max_depth"]: int(self.max_depth),
            _WIRE_NAMES["min_child_weight"]: float(self.min_child_weight),
            _WIRE_NAMES["num_rounds"]: int(self.num_rounds),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BoostingParams":
        """
        Build parameters from wire-named keys.

        Missing keys take their defaults; unknown keys are ignored.
        """
        kwargs = {
            field: data[wire] for field, wire in _WIRE_NAMES.items() if wire in data
        }
        return cls(**kwargs)
