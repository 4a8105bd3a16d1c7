"""gpytorch model used for marginal-likelihood hyperparameter fitting."""

import gpytorch


class ExactGPModel(gpytorch.models.ExactGP):
    """
    Exact GP with zero mean and a scaled correlation kernel.

    Targets are expected to be centred on the prior mean by the caller.

    Args:
        train_x: Training inputs in the unit cube (N x D)
        train_y: Centred training outputs (N,)
        likelihood: GPyTorch likelihood
        base_kernel: Correlation kernel (PowerExponentialKernel or MaternKernel)
    """

    def __init__(self, train_x, train_y, likelihood, base_kernel):
        super().__init__(train_x, train_y, likelihood)

        self.mean_module = gpytorch.means.ZeroMean()
        self.covar_module = gpytorch.kernels.ScaleKernel(base_kernel)

    def forward(self, x):
        mean_x = self.mean_module(x)
        covar_x = self.covar_module(x)
        return gpytorch.distributions.MultivariateNormal(mean_x, covar_x)
