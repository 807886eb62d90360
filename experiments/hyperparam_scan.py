"""
Hyperparameter scan for the boosted tree classifier.

Performs a grid search over learning rate, depth, minimum child weight and
number of rounds on the circular-boundary dataset and saves the results.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from itertools import product
from sklearn.metrics import roc_auc_score

from boosttree import BoostedTreeClassifier, BoostTreeError
from boosttree.datasets import make_circular_boundary
from boosttree.utils import logistic_loss

OUTPUT_DIR = Path(__file__).resolve().parent


def prepare_data(n_train=1000, n_test=300, seed=7):
    """Draw train and test sets from the circular boundary problem."""
    print("Generating circular-boundary data...")
    X_train, y_train = make_circular_boundary(n_train, random_state=seed)
    X_test, y_test = make_circular_boundary(n_test, random_state=seed + 1)
    return X_train, X_test, y_train, y_test


def grid_search():
    """Grid search over the four hyperparameters."""
    print("\n" + "="*60)
    print("Hyperparameter Grid Search")
    print("="*60)

    X_train, X_test, y_train, y_test = prepare_data()

    # Define grid
    param_grid = {
        'num_rounds': [20, 50, 100],
        'learning_rate': [0.1, 0.3, 0.6],
        'max_depth': [2, 3, 4, 6],
        'min_child_weight': [1, 10, 50]
    }

    results = []
    total_combinations = np.prod([len(v) for v in param_grid.values()])

    print(f"\nTotal combinations: {total_combinations}")
    print("Running grid search...")

    combo_idx = 0
    for rounds, lr, depth, mcw in product(
        param_grid['num_rounds'],
        param_grid['learning_rate'],
        param_grid['max_depth'],
        param_grid['min_child_weight']
    ):
        combo_idx += 1
        print(f"\n[{combo_idx}/{total_combinations}] Testing: "
              f"rounds={rounds}, lr={lr}, depth={depth}, min_child_weight={mcw}")

        try:
            model = BoostedTreeClassifier(
                num_rounds=rounds,
                learning_rate=lr,
                max_depth=depth,
                min_child_weight=mcw
            )
            model.fit(X_train, y_train)
        except BoostTreeError as e:
            print(f"  Error: {e}")
            continue

        test_proba = model.predict_batch(X_test)
        test_auc = roc_auc_score(y_test, test_proba)
        test_loss = logistic_loss(y_test, model._predict_raw(X_test))

        results.append({
            'num_rounds': rounds,
            'learning_rate': lr,
            'max_depth': depth,
            'min_child_weight': mcw,
            'train_loss': model.train_scores_[-1],
            'test_loss': test_loss,
            'test_auc': test_auc,
            'splits': sum(model.get_feature_importance())
        })

        print(f"  Train loss: {model.train_scores_[-1]:.4f}, "
              f"Test loss: {test_loss:.4f}, AUC: {test_auc:.4f}")

    df_results = pd.DataFrame(results)
    df_results = df_results.sort_values('test_auc', ascending=False)

    # Save results
    output_path = OUTPUT_DIR / 'grid_search.csv'
    df_results.to_csv(output_path, index=False)
    print(f"\nSaved results to: {output_path}")

    print("\n" + "="*60)
    print("Top 10 Configurations (by Test AUC)")
    print("="*60)
    print(df_results.head(10).to_string(index=False))

    return df_results


def plot_hyperparameter_effects(df):
    """Create visualisations of hyperparameter effects."""
    print("\n" + "="*60)
    print("Creating Hyperparameter Effect Plots")
    print("="*60)

    hyperparams = ['num_rounds', 'learning_rate', 'max_depth', 'min_child_weight']
    fig, axes = plt.subplots(1, 4, figsize=(20, 5))

    for idx, param in enumerate(hyperparams):
        ax = axes[idx]
        grouped = df.groupby(param)['test_auc'].agg(['mean', 'std'])

        ax.errorbar(
            grouped.index, grouped['mean'], yerr=grouped['std'],
            marker='o', capsize=5, linewidth=2, markersize=8
        )
        ax.set_xlabel(param)
        ax.set_ylabel('Test AUC')
        ax.set_title(f'{param} Effect')
        ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(OUTPUT_DIR / 'hyperparameter_effects.png', dpi=150)
    print("\nSaved plot: hyperparameter_effects.png")


def main():
    """Run hyperparameter scan."""
    print("="*60)
    print("Hyperparameter Scan")
    print("="*60)

    df = grid_search()
    plot_hyperparameter_effects(df)

    print("\n" + "="*60)
    print("Hyperparameter Scan Complete!")
    print("="*60)
    print("\nBest Configuration:")
    print(df.iloc[0].to_string())


if __name__ == "__main__":
    main()
