"""Optional early-stopping policies for the optimization loop."""

from abc import ABC, abstractmethod

from .history import BO


class StoppingPolicy(ABC):
    """Consulted after every loop iteration; returning True terminates the run."""

    @abstractmethod
    def should_stop(self, history, direction):
        """
        Args:
            history: OptimizationHistory so far
            direction: Direction of the run

        Returns:
            bool
        """


class NoImprovementStopping(StoppingPolicy):
    """
    Stop after `patience` consecutive loop iterations that did not beat the
    best value so far by more than `min_delta`.

    Args:
        patience: Iterations without improvement before stopping
        min_delta: Minimum improvement that resets the counter
    """

    def __init__(self, patience, min_delta=0.0):
        if patience < 1:
            raise ValueError("patience must be at least 1")
        if min_delta < 0:
            raise ValueError("min_delta must be non-negative")
        self.patience = patience
        self.min_delta = min_delta

    def should_stop(self, history, direction):
        best = None
        stale = 0
        for entry in history:
            value = direction.sign * entry.y
            if best is None:
                best = value
                continue
            improved = value > best + self.min_delta
            if value > best:
                best = value
            if entry.phase != BO:
                continue
            stale = 0 if improved else stale + 1
        return stale >= self.patience
