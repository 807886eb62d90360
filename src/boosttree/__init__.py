"""
Gradient boosted decision trees from scratch.

Fits shallow regression trees to first-order residuals with exact greedy
split search (XGBoost style, unit hessians) and maps the additive score to a
probability with the logistic sigmoid.
"""

from .core import BoostedTreeClassifier
from .exceptions import (
    BoostTreeError, InvalidInputError, InvalidHyperparameterError, SerializationError
)
from .params import BoostingParams

__version__ = "0.1.0"
__all__ = [
    "BoostedTreeClassifier",
    "BoostingParams",
    "BoostTreeError",
    "InvalidInputError",
    "InvalidHyperparameterError",
    "SerializationError",
]
