"""
Core boosted tree ensemble for binary classification.

Each round fits one regression tree (see tree.TreeBuilder) to the residuals
y - F of the current additive prediction F and adds it, scaled by the
learning rate:

1. Initialisation: F_0(x) = 0.5 (base score).
2. For m = 1 to M:
   a. Residuals: g_i = y_i - F_{m-1}(x_i).
   b. Fit a tree to {(x_i, g_i)}; leaf values are mean residuals.
   c. Update: F_m(x) = F_{m-1}(x) + ν * tree_m(x).

Probabilities: p(x) = sigmoid(F_M(x)).

The same base score 0.5 is used as the starting prediction for residuals and
as the raw-score offset before the sigmoid. Saved models depend on this, so
it is kept fixed.

References:
- Friedman, J. H. (2001). Greedy function approximation: A gradient boosting machine.
  Annals of Statistics, 29(5), 1189-1232.
- Chen, T., & Guestrin, C. (2016). XGBoost: A scalable tree boosting system. KDD.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import json
import logging
import numpy as np

from .exceptions import InvalidInputError, SerializationError
from .params import BoostingParams
from .serialization import ensemble_from_dict, ensemble_to_dict
from .tree import DecisionNode, TreeBuilder, feature_importance, predict_tree, traverse
from .utils import (
    ArrayLike, check_X_y, check_features, check_vector, is_ragged, logistic_loss,
    residual_gradient, sigmoid,
)

BASE_SCORE = 0.5


class BoostedTreeClassifier:
    """
    Gradient boosted trees with a logistic link for binary labels.

    Labels outside {0, 1} are accepted as regression targets for the residuals
    but the output is always a single sigmoid probability.
    """

    def __init__(
        self,
        learning_rate: float = 0.3,
        max_depth: int = 4,
        min_child_weight: float = 1,
        num_rounds: int = 100,
        verbose: bool = False
    ):
        """
        Args:
            learning_rate: Shrinkage ν > 0 applied to every tree's output.
            max_depth: Maximum depth of each tree.
            min_child_weight: Minimum number of samples a node needs to be split.
            num_rounds: Number of boosting rounds (trees).
            verbose: Enable logging output.

        Raises:
            InvalidHyperparameterError: If any value is out of range.
        """
        self.params = BoostingParams(
            learning_rate=learning_rate,
            max_depth=max_depth,
            min_child_weight=min_child_weight,
            num_rounds=num_rounds,
        )
        self.verbose = verbose

        # Model state
        self.trees_: List[DecisionNode] = []

        # Training history
        self.train_scores_: List[float] = []
        self.val_scores_: List[float] = []

        # Setup logging
        self.logger = logging.getLogger(__name__)
        if self.verbose:
            logging.basicConfig(level=logging.INFO)

    @classmethod
    def from_params(cls, params: BoostingParams, verbose: bool = False) -> "BoostedTreeClassifier":
        """Create an untrained model from an existing configuration."""
        return cls(
            learning_rate=params.learning_rate,
            max_depth=params.max_depth,
            min_child_weight=params.min_child_weight,
            num_rounds=params.num_rounds,
            verbose=verbose,
        )

    @property
    def learning_rate(self) -> float:
        return self.params.learning_rate

    @property
    def max_depth(self) -> int:
        return self.params.max_depth

    @property
    def min_child_weight(self) -> float:
        return self.params.min_child_weight

    @property
    def num_rounds(self) -> int:
        return self.params.num_rounds

    def fit(
        self,
        X: ArrayLike,
        y: Sequence[float],
        X_val: Optional[ArrayLike] = None,
        y_val: Optional[Sequence[float]] = None
    ) -> "BoostedTreeClassifier":
        """
        Fit the ensemble. Any previously fitted trees are discarded.

        Args:
            X: Training features, shape (n_samples, n_features).
            y: Training targets {0, 1}, shape (n_samples,).
            X_val: Optional validation features.
            y_val: Optional validation targets.

        Returns:
            self

        Raises:
            InvalidInputError: If X is empty or ragged, or X and y lengths differ.
        """
        X, y = check_X_y(X, y)
        if X_val is not None and y_val is not None:
            X_val, y_val = check_X_y(X_val, y_val)
            if X_val.shape[1] != X.shape[1]:
                raise InvalidInputError(
                    f"X_val has {X_val.shape[1]} features, expected {X.shape[1]}"
                )

        if not np.all(np.isin(y, (0.0, 1.0))):
            self.logger.warning(
                "Labels outside {0, 1} found; they are fitted as residual targets "
                "but only a single binary probability is produced"
            )

        builder = TreeBuilder(
            max_depth=self.params.max_depth,
            min_child_weight=self.params.min_child_weight,
        )
        F_train = np.full(X.shape[0], BASE_SCORE)  # Current raw predictions

        self.trees_ = []
        self.train_scores_ = []
        self.val_scores_ = []

        if self.verbose:
            self.logger.info(
                f"Boosting {self.params.num_rounds} rounds on {X.shape[0]} samples, "
                f"{X.shape[1]} features (base score {BASE_SCORE})"
            )

        for m in range(self.params.num_rounds):
            # (a) Residuals of the current prediction
            gradients = residual_gradient(y, F_train)

            # (b) Fit tree to residuals on the full sample
            tree = builder.build(X, gradients)
            self.trees_.append(tree)

            # (c) Update predictions with shrinkage
            F_train += self.params.learning_rate * predict_tree(tree, X)

            # Track scores
            train_loss = logistic_loss(y, F_train)
            self.train_scores_.append(train_loss)

            if X_val is not None and y_val is not None:
                F_val = self._predict_raw(X_val, up_to_iteration=m + 1)
                val_loss = logistic_loss(y_val, F_val)
                self.val_scores_.append(val_loss)

                if self.verbose and (m + 1) % 10 == 0:
                    self.logger.info(
                        f"Round {m+1}/{self.params.num_rounds}: "
                        f"train_loss={train_loss:.6f}, val_loss={val_loss:.6f}"
                    )
            elif self.verbose and (m + 1) % 10 == 0:
                self.logger.info(
                    f"Round {m+1}/{self.params.num_rounds}: train_loss={train_loss:.6f}"
                )

        return self

    def _predict_raw(self, X: ArrayLike, up_to_iteration: Optional[int] = None) -> np.ndarray:
        """
        Raw additive scores (before sigmoid).

        Args:
            X: Features, shape (n_samples, n_features).
            up_to_iteration: Use only the first k trees (for staged predictions).

        Returns:
            Raw predictions F(x), shape (n_samples,).
        """
        X = check_features(X, allow_empty=True)
        n_trees = up_to_iteration if up_to_iteration is not None else len(self.trees_)

        F = np.full(X.shape[0], BASE_SCORE)
        for tree in self.trees_[:n_trees]:
            F += self.params.learning_rate * predict_tree(tree, X)

        return F

    def predict_single(self, x: Sequence[float]) -> float:
        """
        Probability of class 1 for one feature vector.

        Raises:
            InvalidInputError: If x contains non-finite values or a split uses
                a feature index beyond len(x).
        """
        x = check_vector(x)
        raw = BASE_SCORE
        for tree in self.trees_:
            raw += self.params.learning_rate * traverse(x, tree)
        return float(sigmoid(raw))

    def predict_batch(self, X: ArrayLike) -> np.ndarray:
        """
        Predict class-1 probabilities, one per row, in input order.

        Rows may have different lengths; each row only needs the features
        used by the splits it visits, exactly as in predict_single.

        Args:
            X: Features, shape (n_samples, n_features), or a sequence of rows.

        Returns:
            Probabilities, shape (n_samples,).
        """
        if not isinstance(X, np.ndarray):
            X = list(X)
            if is_ragged(X):
                return np.array([self.predict_single(row) for row in X], dtype=float)
        return sigmoid(self._predict_raw(X))

    def predict_proba(self, X: ArrayLike) -> np.ndarray:
        """Alias of predict_batch."""
        return self.predict_batch(X)

    def predict(self, X: ArrayLike, threshold: float = 0.5) -> np.ndarray:
        """
        Predict class labels.

        Args:
            X: Features, shape (n_samples, n_features).
            threshold: Probability at or above which a row is labelled 1.

        Returns:
            Predicted labels {0, 1}, shape (n_samples,).
        """
        proba = self.predict_batch(X)
        return (proba >= threshold).astype(int)

    def get_feature_importance(self) -> List[int]:
        """
        Number of splits per feature across all trees.

        Returns an empty list for an untrained model or one without splits.
        """
        return feature_importance(self.trees_)

    # ===========================
    # Serialization
    # ===========================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize trees and hyperparameters to a JSON-compatible dict."""
        return ensemble_to_dict(self.trees_, self.params)

    def to_json(self, **kwargs) -> str:
        """Serialize to a JSON string. Keyword arguments go to json.dumps."""
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "BoostedTreeClassifier":
        """Rebuild a model from a dict produced by to_dict."""
        trees, params = ensemble_from_dict(record)
        model = cls.from_params(params)
        model.trees_ = trees
        return model

    @classmethod
    def from_json(cls, data: Union[str, bytes, Mapping[str, Any]]) -> "BoostedTreeClassifier":
        """Rebuild a model from a JSON string (or an already parsed dict)."""
        if isinstance(data, Mapping):
            return cls.from_dict(data)
        try:
            record = json.loads(data)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"Invalid JSON: {exc}") from exc
        return cls.from_dict(record)
