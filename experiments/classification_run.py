"""
Classification experiments on the synthetic two-feature boundaries.

Trains the boosted tree classifier on the linear, circular and noisy datasets,
reports metrics, plots loss curves and feature importance, and checks that a
JSON round trip leaves predictions unchanged.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.metrics import roc_curve

from boosttree import BoostedTreeClassifier
from boosttree.datasets import generate_dataset
from boosttree.utils import compute_metrics_classification

OUTPUT_DIR = Path(__file__).resolve().parent

# Set style
plt.style.use('seaborn-v0_8-darkgrid')

DEFAULT_PARAMS = {
    'learning_rate': 0.3,
    'max_depth': 4,
    'min_child_weight': 1,
    'num_rounds': 100,
}


def load_dataset(kind, n_train=1000, n_test=200, seed=42):
    """Draw independent train and test sets of one synthetic kind."""
    X_train, y_train = generate_dataset(kind, n_train, random_state=seed)
    X_test, y_test = generate_dataset(kind, n_test, random_state=seed + 1)
    print(f"[{kind}] Train: {X_train.shape}, Test: {X_test.shape}, "
          f"positives: {y_train.mean():.2%} / {y_test.mean():.2%}")
    return X_train, X_test, y_train, y_test


def experiment_datasets():
    """Experiment: default model on every synthetic dataset."""
    print("\n" + "="*60)
    print("Experiment 1: Default model per dataset")
    print("="*60)

    results = []
    fig, axes = plt.subplots(1, 3, figsize=(15, 4))

    for idx, kind in enumerate(['binary', 'nonlinear', 'noisy']):
        X_train, X_test, y_train, y_test = load_dataset(kind)

        model = BoostedTreeClassifier(**DEFAULT_PARAMS)
        model.fit(X_train, y_train, X_val=X_test, y_val=y_test)

        metrics = compute_metrics_classification(y_test, model.predict_batch(X_test))
        for name in ('accuracy', 'precision', 'recall', 'f1', 'roc_auc'):
            print(f"  {name:<10} {metrics[name]:.4f}")

        results.append({'dataset': kind, **metrics})

        ax = axes[idx]
        ax.plot(model.train_scores_, label='Train', linewidth=2)
        ax.plot(model.val_scores_, label='Test', linewidth=2)
        ax.set_xlabel('Round')
        ax.set_ylabel('Log Loss')
        ax.set_title(f'{kind} dataset')
        ax.legend()
        ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(OUTPUT_DIR / 'classification_datasets.png', dpi=150)
    print("\nSaved plot: classification_datasets.png")

    return pd.DataFrame(results)


def experiment_learning_rate(X_train, X_test, y_train, y_test):
    """Experiment: effect of learning rate (shrinkage)."""
    print("\n" + "="*60)
    print("Experiment 2: Effect of learning_rate")
    print("="*60)

    learning_rates = [0.1, 0.3, 1.0]
    results = []

    fig, ax = plt.subplots(figsize=(10, 6))

    for lr in learning_rates:
        print(f"\nFitting with learning_rate={lr}...")

        model = BoostedTreeClassifier(**{**DEFAULT_PARAMS, 'learning_rate': lr})
        model.fit(X_train, y_train, X_val=X_test, y_val=y_test)

        metrics = compute_metrics_classification(y_test, model.predict_batch(X_test))
        print(f"Test ROC AUC:  {metrics['roc_auc']:.4f}")

        results.append({'learning_rate': lr, **metrics})
        ax.plot(model.val_scores_, label=f'lr={lr}', linewidth=2)

    ax.set_xlabel('Round')
    ax.set_ylabel('Test Log Loss')
    ax.set_title('Effect of Learning Rate on Test Loss')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(OUTPUT_DIR / 'classification_learning_rate.png', dpi=150)
    print("\nSaved plot: classification_learning_rate.png")

    return pd.DataFrame(results)


def experiment_max_depth(X_train, X_test, y_train, y_test):
    """Experiment: effect of tree complexity (max_depth)."""
    print("\n" + "="*60)
    print("Experiment 3: Effect of max_depth")
    print("="*60)

    max_depths = [0, 1, 2, 4, 6]
    results = []

    for depth in max_depths:
        print(f"\nFitting with max_depth={depth}...")

        model = BoostedTreeClassifier(**{**DEFAULT_PARAMS, 'max_depth': depth})
        model.fit(X_train, y_train)

        metrics = compute_metrics_classification(y_test, model.predict_batch(X_test))
        print(f"Test ROC AUC:  {metrics['roc_auc']:.4f}")

        results.append({'max_depth': depth, 'splits': sum(model.get_feature_importance()), **metrics})

    return pd.DataFrame(results)


def feature_importance_and_roc(X_train, X_test, y_train, y_test):
    """Plot split-count importance and the ROC curve of the default model."""
    print("\n" + "="*60)
    print("Feature Importance and ROC Curve")
    print("="*60)

    model = BoostedTreeClassifier(**DEFAULT_PARAMS).fit(X_train, y_train)
    importance = model.get_feature_importance()
    print(f"Split counts per feature: {importance}")

    test_proba = model.predict_batch(X_test)
    fpr, tpr, _ = roc_curve(y_test, test_proba)
    auc = compute_metrics_classification(y_test, test_proba)['roc_auc']

    fig, axes = plt.subplots(1, 2, figsize=(12, 5))
    axes[0].bar([f'x{i+1}' for i in range(len(importance))], importance)
    axes[0].set_ylabel('Number of splits')
    axes[0].set_title('Feature Importance')

    axes[1].plot(fpr, tpr, linewidth=2, label=f'boosttree (AUC = {auc:.4f})')
    axes[1].plot([0, 1], [0, 1], 'k--', linewidth=1, label='Random')
    axes[1].set_xlabel('False Positive Rate')
    axes[1].set_ylabel('True Positive Rate')
    axes[1].set_title('ROC Curve')
    axes[1].legend()
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(OUTPUT_DIR / 'classification_importance_roc.png', dpi=150)
    print("\nSaved plot: classification_importance_roc.png")

    return model


def check_serialization(model, X):
    """Round-trip the model through JSON and compare predictions."""
    print("\n" + "="*60)
    print("Serialization Round Trip")
    print("="*60)

    path = OUTPUT_DIR / 'boosttree_model.json'
    path.write_text(model.to_json())
    restored = BoostedTreeClassifier.from_json(path.read_text())

    max_diff = np.max(np.abs(model.predict_batch(X) - restored.predict_batch(X)))
    print(f"Saved model: {path.name} ({path.stat().st_size} bytes)")
    print(f"Max prediction difference after reload: {max_diff:.2e}")
    return max_diff < 1e-6


def main():
    """Run all classification experiments."""
    print("="*60)
    print("Boosted Tree Classification Experiments")
    print("Synthetic two-feature datasets")
    print("="*60)

    results_datasets = experiment_datasets()

    X_train, X_test, y_train, y_test = load_dataset('binary')
    results_lr = experiment_learning_rate(X_train, X_test, y_train, y_test)
    results_depth = experiment_max_depth(X_train, X_test, y_train, y_test)
    model = feature_importance_and_roc(X_train, X_test, y_train, y_test)
    serialization_ok = check_serialization(model, X_test)

    # Save results
    results_datasets.to_csv(OUTPUT_DIR / 'classification_datasets_results.csv', index=False)
    results_lr.to_csv(OUTPUT_DIR / 'classification_learning_rate_results.csv', index=False)
    results_depth.to_csv(OUTPUT_DIR / 'classification_max_depth_results.csv', index=False)

    print("\n" + "="*60)
    print("Results Summary")
    print("="*60)
    print("\nPer dataset:")
    print(results_datasets.to_string(index=False))
    print("\nEffect of learning_rate:")
    print(results_lr.to_string(index=False))
    print("\nEffect of max_depth:")
    print(results_depth.to_string(index=False))
    print(f"\nSerialization round trip: {'PASSED' if serialization_ok else 'FAILED'}")

    print("\n" + "="*60)
    print("Classification Experiments Complete!")
    print("="*60)


if __name__ == "__main__":
    main()
