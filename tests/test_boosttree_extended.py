"""
Extended tests for the boosted tree classifier.

Coverage:
- Metric utility (compute_metrics_classification)
- Synthetic dataset generators and their reproducibility
- Model state invariants after fit (trees_, train_scores_, val_scores_)
- Staged prediction consistency
- Ranking quality on controlled boundaries
- Input–output shape contracts
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from sklearn.datasets import make_classification
from sklearn.metrics import roc_auc_score
from sklearn.model_selection import train_test_split

# ---------- path setup ----------
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from boosttree.core import BASE_SCORE, BoostedTreeClassifier
from boosttree.datasets import (
    generate_dataset,
    make_circular_boundary,
    make_linear_boundary,
    make_noisy_boundary,
)
from boosttree.utils import compute_metrics_classification, logistic_loss


# =============================================================================
# Metric utilities
# =============================================================================


class TestMetricUtilities:
    """compute_metrics_classification returns correct keys and values."""

    def test_classification_metrics_keys(self):
        y = np.array([0, 1, 0, 1, 1])
        proba = np.array([0.1, 0.9, 0.2, 0.8, 0.7])
        result = compute_metrics_classification(y, proba)
        assert {"accuracy", "precision", "recall", "f1", "log_loss", "roc_auc"} == set(result)

    def test_classification_metrics_perfect_prediction(self):
        y = np.array([0, 1, 0, 1])
        proba = np.array([0.01, 0.99, 0.01, 0.99])
        result = compute_metrics_classification(y, proba)
        assert result["accuracy"] == pytest.approx(1.0)
        assert result["precision"] == pytest.approx(1.0)
        assert result["recall"] == pytest.approx(1.0)
        assert result["f1"] == pytest.approx(1.0)
        assert result["roc_auc"] == pytest.approx(1.0)

    def test_classification_metrics_known_confusion(self):
        # tp=2, fp=1, tn=1, fn=1
        y = np.array([1, 1, 1, 0, 0])
        proba = np.array([0.9, 0.8, 0.2, 0.7, 0.1])
        result = compute_metrics_classification(y, proba)
        assert result["accuracy"] == pytest.approx(3 / 5)
        assert result["precision"] == pytest.approx(2 / 3)
        assert result["recall"] == pytest.approx(2 / 3)
        assert result["f1"] == pytest.approx(2 / 3)

    def test_single_class_gives_nan_auc(self):
        y = np.array([1, 1, 1])
        proba = np.array([0.6, 0.7, 0.8])
        result = compute_metrics_classification(y, proba)
        assert np.isnan(result["roc_auc"])
        assert result["accuracy"] == pytest.approx(1.0)

    def test_no_positive_predictions_gives_zero_precision(self):
        y = np.array([0, 1])
        proba = np.array([0.1, 0.2])
        result = compute_metrics_classification(y, proba)
        assert result["precision"] == 0.0
        assert result["f1"] == 0.0


# =============================================================================
# Synthetic datasets
# =============================================================================


class TestDatasets:

    def test_linear_boundary_labels(self):
        X, y = make_linear_boundary(200, random_state=0)
        assert X.shape == (200, 2)
        assert np.all((X >= 0) & (X <= 10))
        np.testing.assert_array_equal(y, (X.sum(axis=1) > 10).astype(int))

    def test_circular_boundary_labels(self):
        X, y = make_circular_boundary(200, random_state=0)
        assert np.all((X >= -5) & (X <= 5))
        np.testing.assert_array_equal(y, ((X ** 2).sum(axis=1) < 16).astype(int))

    def test_noisy_boundary_flips_some_labels(self):
        X, y = make_noisy_boundary(1000, noise=0.1, random_state=0)
        clean = (X.sum(axis=1) > 10).astype(int)
        flipped = np.mean(y != clean)
        assert 0.05 < flipped < 0.15

    def test_generate_dataset_is_reproducible(self):
        for kind in ("binary", "nonlinear", "noisy"):
            X1, y1 = generate_dataset(kind, 50, random_state=3)
            X2, y2 = generate_dataset(kind, 50, random_state=3)
            np.testing.assert_array_equal(X1, X2)
            np.testing.assert_array_equal(y1, y2)

    def test_unknown_dataset_kind(self):
        with pytest.raises(ValueError):
            generate_dataset("spiral")


# =============================================================================
# Model state after fit
# =============================================================================


class TestModelStateAfterFit:

    def test_tree_count_equals_num_rounds(self):
        X, y = make_classification(weights=[0.7], n_samples=60, n_features=5, random_state=0)
        model = BoostedTreeClassifier(num_rounds=7).fit(X, y)
        assert len(model.trees_) == 7
        assert len(model.train_scores_) == 7

    def test_val_scores_empty_without_validation_data(self):
        X, y = make_classification(weights=[0.7], n_samples=60, n_features=5, random_state=0)
        model = BoostedTreeClassifier(num_rounds=5).fit(X, y)
        assert model.val_scores_ == []

    def test_validation_tracking(self):
        X, y = make_classification(weights=[0.7], n_samples=200, n_features=5, random_state=42)
        X_train, X_val, y_train, y_val = train_test_split(
            X, y, test_size=0.3, random_state=42
        )
        model = BoostedTreeClassifier(num_rounds=10)
        model.fit(X_train, y_train, X_val=X_val, y_val=y_val)

        assert len(model.val_scores_) == 10
        expected = logistic_loss(y_val, model._predict_raw(X_val))
        assert model.val_scores_[-1] == pytest.approx(expected, rel=1e-12)

    def test_validation_feature_mismatch_rejected(self):
        X, y = make_classification(weights=[0.7], n_samples=50, n_features=5, random_state=0)
        with pytest.raises(ValueError):
            BoostedTreeClassifier(num_rounds=2).fit(X, y, X_val=X[:, :3], y_val=y)

    def test_training_loss_below_base_score_loss(self):
        X, y = make_linear_boundary(301, random_state=1)
        model = BoostedTreeClassifier(num_rounds=30).fit(X, y)

        base_loss = logistic_loss(y, np.full(len(y), BASE_SCORE))
        assert model.train_scores_[-1] < base_loss


# =============================================================================
# Staged prediction consistency
# =============================================================================


class TestStagedPredictionConsistency:

    def test_staged_matches_partial_model(self):
        X, y = make_classification(weights=[0.7], n_samples=80, n_features=5, random_state=0)

        full = BoostedTreeClassifier(num_rounds=15).fit(X, y)
        partial = BoostedTreeClassifier(num_rounds=7).fit(X, y)

        assert full.trees_[:7] == partial.trees_
        np.testing.assert_allclose(
            full._predict_raw(X, up_to_iteration=7), partial._predict_raw(X), rtol=1e-12
        )

    def test_staged_final_matches_predict(self):
        X, y = make_classification(weights=[0.7], n_samples=80, n_features=5, random_state=0)
        model = BoostedTreeClassifier(num_rounds=10).fit(X, y)

        staged = model._predict_raw(X, up_to_iteration=10)
        np.testing.assert_array_equal(staged, model._predict_raw(X))

    def test_staged_zero_is_base_score(self):
        X, y = make_classification(weights=[0.7], n_samples=30, n_features=3, n_informative=2,
                                   n_redundant=0, random_state=0)
        model = BoostedTreeClassifier(num_rounds=3).fit(X, y)
        np.testing.assert_array_equal(model._predict_raw(X, up_to_iteration=0), BASE_SCORE)


# =============================================================================
# Ranking quality
# =============================================================================


class TestRankingQuality:
    """
    Scores must rank positives above negatives on simple boundaries.

    Negatives converge towards a raw score of 0 (probability 0.5) and positives
    towards 1, so ROC AUC is the meaningful quality measure here.
    """

    def test_linear_boundary_auc(self):
        X_train, y_train = make_linear_boundary(1001, random_state=0)
        X_test, y_test = make_linear_boundary(200, random_state=1)

        model = BoostedTreeClassifier().fit(X_train, y_train)
        auc = roc_auc_score(y_test, model.predict_batch(X_test))
        assert auc > 0.9, f"Expected AUC > 0.9, got {auc:.4f}"

    def test_circular_boundary_auc(self):
        X_train, y_train = make_circular_boundary(1001, random_state=0)
        X_test, y_test = make_circular_boundary(200, random_state=1)

        model = BoostedTreeClassifier(num_rounds=50).fit(X_train, y_train)
        auc = roc_auc_score(y_test, model.predict_batch(X_test))
        assert auc > 0.9, f"Expected AUC > 0.9, got {auc:.4f}"


# =============================================================================
# Output shape contracts
# =============================================================================


class TestOutputShapeContracts:

    def test_predict_shapes(self):
        X_tr, y_tr = make_classification(weights=[0.7], n_samples=50, n_features=5, random_state=0)
        X_te = np.random.default_rng(0).standard_normal((17, 5))

        model = BoostedTreeClassifier(num_rounds=5).fit(X_tr, y_tr)

        assert model.predict(X_te).shape == (17,)
        assert model.predict_batch(X_te).shape == (17,)
        assert isinstance(model.predict_single(X_te[0]), float)

    def test_predict_labels_are_binary(self):
        X, y = make_classification(weights=[0.7], n_samples=60, n_features=4, random_state=0)
        model = BoostedTreeClassifier(num_rounds=10).fit(X, y)
        assert set(np.unique(model.predict(X))).issubset({0, 1})

    def test_single_feature_input(self):
        rng = np.random.default_rng(3)
        X = rng.standard_normal((40, 1))
        y = (X[:, 0] > 0.3).astype(float)
        model = BoostedTreeClassifier(num_rounds=10).fit(X, y)
        assert model.predict_batch(X).shape == (40,)
        assert len(model.get_feature_importance()) <= 1

    def test_list_input_matches_array_input(self):
        X, y = make_classification(weights=[0.7], n_samples=40, n_features=3, n_informative=2,
                                   n_redundant=0, random_state=5)
        from_array = BoostedTreeClassifier(num_rounds=5).fit(X, y)
        from_list = BoostedTreeClassifier(num_rounds=5).fit(X.tolist(), y.tolist())

        assert from_array.trees_ == from_list.trees_


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
