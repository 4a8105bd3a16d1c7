"""Basic example: minimise a 1-D oscillating function."""

import logging

from gpbo import BayesianOptimizer
from gpbo.objectives import oscillating_1d


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("="*60)
    print("Bayesian Optimization Example")
    print("="*60)

    optimizer = BayesianOptimizer(
        oscillating_1d,
        bounds={'x': (0.0, 1.0)},
        init_grid=[{'x': v} for v in (0.0, 1/3, 1/2, 2/3, 1.0)],
        init_points=0,
        n_iter=15,
        direction='minimize',
        acquisition='ei',
        kernel='power_exponential',
        grid_size=200,
        random_seed=7,
    )

    print("\nMinimising f(x) = (2x-10)^2 * sin(32x-4) on [0, 1]")
    result = optimizer.optimize()

    print("\n" + "="*60)
    print("RESULTS")
    print("="*60)
    print(f"Best point found: x = {result.best_params['x']:.4f}")
    print(f"Best value:       {result.best_y:.4f}")

    print("\nHistory:")
    for entry in result.history:
        acq = '-' if entry.acquisition_value is None else f"{entry.acquisition_value:.4f}"
        print(f"  {entry.index:2d} [{entry.phase:4s}] x={entry.x[0]:.4f}  y={entry.y:9.4f}  acq={acq}")


if __name__ == "__main__":
    main()
