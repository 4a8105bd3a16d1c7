"""Error types raised by the optimizer and its components."""


class GPBOError(Exception):
    """Base class for all package errors."""


class ConfigurationError(GPBOError, ValueError):
    """Invalid bounds, options or acquisition mode, raised at construction."""


class InvalidKernelParameter(ConfigurationError):
    """Kernel family parameter outside its legal range."""


class OptimizationError(GPBOError):
    """
    Error that aborts a running optimization.

    Args:
        message: Description of the failure
        iteration: Loop iteration at which the run aborted (None while seeding)
        history: Snapshot of the history entries recorded before the failure
    """

    def __init__(self, message, iteration=None, history=None):
        super().__init__(message)
        self.iteration = iteration
        self.history = tuple(history) if history is not None else ()

    def with_context(self, iteration, history):
        """Attach run context, keeping any context already set."""
        if self.iteration is None:
            self.iteration = iteration
        if not self.history and history is not None:
            self.history = tuple(history)
        return self

    def __str__(self):
        msg = super().__str__()
        if self.iteration is not None:
            msg = f"{msg} (iteration {self.iteration})"
        return msg


class SingularCovarianceError(OptimizationError):
    """Covariance matrix not positive definite even after nugget injection."""


class EmptySeedError(OptimizationError):
    """No initial observations to fit the first surrogate on."""


class ObjectiveEvaluationError(OptimizationError):
    """Objective raised, returned a non-finite value, or timed out."""


class BoundsViolationError(OptimizationError):
    """An internally produced candidate lies outside the declared bounds."""
