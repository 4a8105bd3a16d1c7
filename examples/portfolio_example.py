"""Penalised Sharpe-ratio portfolio over three assets."""

import logging

import numpy as np

from gpbo import BayesianOptimizer, NoImprovementStopping, PortfolioFitness


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    expected_returns = np.array([0.10, 0.12, 0.08])
    vols = np.array([0.20, 0.30, 0.15])
    corr = np.array([
        [1.0, 0.3, 0.1],
        [0.3, 1.0, 0.2],
        [0.1, 0.2, 1.0],
    ])
    covariance = corr * np.outer(vols, vols)

    fitness = PortfolioFitness(expected_returns, covariance, penalty_weight=1e4)

    optimizer = BayesianOptimizer(
        fitness,
        bounds=fitness.bounds(),
        init_grid=[{name: 1/3 for name in fitness.asset_names}],
        init_points=10,
        n_iter=30,
        acquisition='ucb',
        kappa=2.0,
        kernel='matern',
        nu=2.5,
        candidate_strategy='gradient',
        random_seed=42,
        stopping=NoImprovementStopping(patience=10),
    )
    result = optimizer.optimize()

    weights = np.array(result.best_x)
    best = result.best_entry
    print("\n" + "="*60)
    print("RESULTS")
    print("="*60)
    print(f"Weights:    {np.round(weights, 4)} (sum {weights.sum():.6f})")
    print(f"Sharpe:     {best.aux['sharpe']:.4f}")
    print(f"Volatility: {best.aux['volatility']:.4f}")
    print(f"Iterations: {result.n_iterations} (stopped early: {result.stopped_early})")


if __name__ == "__main__":
    main()
