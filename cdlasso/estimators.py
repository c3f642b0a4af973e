# License: BSD 3 clause

import numpy as np
from sklearn.linear_model._base import LinearModel, RegressorMixin
from sklearn.utils.validation import validate_data

from cdlasso.datafits import LeastSquares, SqrtLasso as SqrtLassoDatafit
from cdlasso.penalties import L1, WeightedL1
from cdlasso.solvers import (CDOptions, coordinate_descent, coordinate_descent_path,
                             lasso_raw, group_lasso_raw)
from cdlasso.sparse_iterate import SparseIterate


def _validate(model, X, y):
    check_X_params = dict(dtype=np.float64, order='F')
    check_y_params = dict(ensure_2d=False, dtype=np.float64)
    return validate_data(
        model, X, y, validate_separately=(check_X_params, check_y_params))


def _init_iterate(model, n_features):
    # warm start from the previous fit, continuation path from 0 otherwise
    if model.warm_start and getattr(model, "coef_", None) is not None:
        return SparseIterate.from_dense(model.coef_), True
    return SparseIterate(n_features), False


class Lasso(RegressorMixin, LinearModel):
    r"""Lasso estimator based on coordinate descent.

    The optimization objective for Lasso is:

    .. math::
        1 / (2 xx n_"samples")  ||y - Xw||_2 ^ 2 + alpha sum_j "weights"_j |w_j|

    Parameters
    ----------
    alpha : float, optional
        Penalty strength.

    weights : array, shape (n_features,), optional
        Positive weights used in the L1 penalty. If None, every feature is
        penalized with weight 1. A zero weight leaves the feature unpenalized.

    solver : str, default "cd"
        ``"cd"`` runs coordinate descent on the residuals with a continuation
        path from ``alpha_max``. ``"active_shooting"`` runs the active set
        solver on the Gram matrix, suited to ``n_features < n_samples``.

    max_iter : int, optional
        Maximum number of passes over the coordinates.

    tol : float, optional
        Tolerance on the largest coordinate change.

    warm_start : bool, optional (default=False)
        When set to ``True``, reuse the solution of the previous call to fit as
        initialization, otherwise, just erase the previous solution.

    n_steps : int, optional
        Number of steps of the continuation path.

    verbose : bool or int
        Amount of verbosity.

    Attributes
    ----------
    coef_ : array, shape (n_features,)
        parameter vector (:math:`w` in the cost function formula)

    intercept_ : float
        Always 0, no intercept is fitted.

    status_ : SolverStatus
        Outcome of the solver.
    """

    def __init__(self, alpha=1., weights=None, solver="cd", max_iter=2000, tol=1e-7,
                 warm_start=False, n_steps=50, verbose=0):
        super().__init__()
        self.alpha = alpha
        self.weights = weights
        self.solver = solver
        self.max_iter = max_iter
        self.tol = tol
        self.warm_start = warm_start
        self.n_steps = n_steps
        self.verbose = verbose

    def _penalty(self):
        if self.weights is None:
            return L1(self.alpha)
        return WeightedL1(self.alpha, np.asarray(self.weights, dtype=np.float64))

    def fit(self, X, y):
        """Fit the model according to the given training data.

        Parameters
        ----------
        X : array-like, shape (n_samples, n_features)
            Training data, where n_samples is the number of samples and
            n_features is the number of features.

        y : array-like, shape (n_samples,)
            Target vector relative to X.

        Returns
        -------
        self :
            Fitted estimator.
        """
        X, y = _validate(self, X, y)
        n_features = X.shape[1]
        w, warm_start = _init_iterate(self, n_features)
        options = CDOptions(max_iter=self.max_iter, tol=self.tol,
                            warm_start=warm_start, n_steps=self.n_steps,
                            verbose=self.verbose)

        if self.solver == "cd":
            self.status_ = coordinate_descent(
                w, LeastSquares(X, y), self._penalty(), options)
        elif self.solver == "active_shooting":
            weights = np.ones(n_features) if self.weights is None else self.weights
            self.status_ = lasso_raw(
                w, X, y, self.alpha * np.asarray(weights, dtype=np.float64), options)
        else:
            raise ValueError(
                f"Unknown solver {self.solver!r}, expected 'cd' or 'active_shooting'.")

        self.coef_ = w.to_dense()
        self.intercept_ = 0.
        return self

    def path(self, X, y, alphas=None):
        """Compute Lasso path.

        Parameters
        ----------
        X : array, shape (n_samples, n_features)
            Design matrix.

        y : array, shape (n_samples,)
            Target vector.

        alphas : array, shape (n_alphas,) default None
            Grid of alpha. If None, a geometric grid from ``alpha_max`` down
            to ``alpha`` with ``n_steps`` steps is used.

        Returns
        -------
        alphas : array, shape (n_alphas,)
            The alphas along the path where models are computed.

        coefs : array, shape (n_features, n_alphas)
            Coefficients along the path.
        """
        X, y = _validate(self, X, y)
        options = CDOptions(max_iter=self.max_iter, tol=self.tol,
                            n_steps=self.n_steps, verbose=self.verbose)
        alphas, coefs, _ = coordinate_descent_path(
            SparseIterate(X.shape[1]), LeastSquares(X, y),
            self._penalty(), alphas, options)
        return alphas, coefs


class SqrtLasso(RegressorMixin, LinearModel):
    """Square root Lasso estimator based on exact coordinate updates.

    The optimization objective for square root Lasso is::

        ||y - X w||_2 / sqrt(n_samples) + alpha * ||w||_1

    Parameters
    ----------
    alpha : float, default 1
        Penalty strength.

    max_iter : int, default 2000
        Maximum number of passes over the coordinates.

    tol : float, default 1e-7
        Tolerance on the largest coordinate change.

    warm_start : bool, optional (default=False)
        When set to ``True``, reuse the solution of the previous call to fit as
        initialization, otherwise, just erase the previous solution.

    n_steps : int, default 50
        Number of steps of the continuation path.

    verbose : bool, default False
        Amount of verbosity. 0/False is silent.
    """

    def __init__(self, alpha=1., max_iter=2000, tol=1e-7, warm_start=False,
                 n_steps=50, verbose=0):
        super().__init__()
        self.alpha = alpha
        self.max_iter = max_iter
        self.tol = tol
        self.warm_start = warm_start
        self.n_steps = n_steps
        self.verbose = verbose

    def fit(self, X, y):
        """Fit the model according to the given training data.

        Parameters
        ----------
        X : array, shape (n_samples, n_features)
            Training data, where n_samples is the number of samples and
            n_features is the number of features.

        y : array-like, shape (n_samples,)
            Target vector relative to X.

        Returns
        -------
        self :
            Fitted estimator.
        """
        X, y = _validate(self, X, y)
        w, warm_start = _init_iterate(self, X.shape[1])
        options = CDOptions(max_iter=self.max_iter, tol=self.tol,
                            warm_start=warm_start, n_steps=self.n_steps,
                            verbose=self.verbose)
        self.status_ = coordinate_descent(
            w, SqrtLassoDatafit(X, y), L1(self.alpha), options)
        self.coef_ = w.to_dense()
        self.intercept_ = 0.
        return self

    def path(self, X, y, alphas=None):
        """Compute square root Lasso path.

        Parameters
        ----------
        X : array, shape (n_samples, n_features)
            Design matrix.

        y : array, shape (n_samples,)
            Target vector.

        alphas : array, shape (n_alphas,) default None
            Grid of alpha. If None, a geometric grid from ``alpha_max`` down
            to ``alpha`` with ``n_steps`` steps is used.

        Returns
        -------
        alphas : array, shape (n_alphas,)
            The alphas along the path where models are computed.

        coefs : array, shape (n_features, n_alphas)
            Coefficients along the path.
        """
        X, y = _validate(self, X, y)
        options = CDOptions(max_iter=self.max_iter, tol=self.tol,
                            n_steps=self.n_steps, verbose=self.verbose)
        alphas, coefs, _ = coordinate_descent_path(
            SparseIterate(X.shape[1]), SqrtLassoDatafit(X, y), L1(self.alpha),
            alphas, options)
        return alphas, coefs


class GroupLasso(RegressorMixin, LinearModel):
    r"""GroupLasso estimator based on the active shooting solver.

    The optimization objective for GroupLasso is:

    .. math::
        1 / (2 xx n_"samples") ||y - X w||_2 ^ 2 + alpha \sum_g
        weights_g ||w_{[g]}||_2

    with :math:`w_{[g]}` the coefficients of the g-th group.

    Parameters
    ----------
    groups : int | list of ints | list of lists of ints
        Partition of features used in the penalty on ``w``.
        If an int is passed, groups are contiguous blocks of features, of size
        ``groups``.
        If a list of ints is passed, groups are assumed to be contiguous,
        group number ``g`` being of size ``groups[g]``.
        If a list of lists of ints is passed, ``groups[g]`` contains the
        feature indices of the group number ``g``.

    alpha : float, optional
        Penalty strength.

    weights : array, shape (n_groups,), optional (default=None)
        Positive weights used in the L1 penalty part of the Lasso
        objective. If None, weights equal to 1 are used.

    max_iter : int, optional (default=2000)
        The maximum number of active set updates.

    max_inner_iter : int, optional (default=1000)
        Maximum number of passes over the active groups.

    tol : float, optional
        Stopping criterion for the optimization.

    warm_start : bool, optional (default=False)
        When set to ``True``, reuse the solution of the previous call to fit as
        initialization, otherwise, just erase the previous solution.

    verbose : int, optional
        Amount of verbosity. 0/False is silent.

    Attributes
    ----------
    coef_ : ndarray, shape (n_features,)
        parameter vector (:math:`w` in the cost function formula)

    intercept_ : float
        Always 0, no intercept is fitted.
    """

    def __init__(self, groups, alpha=1., weights=None, max_iter=2000,
                 max_inner_iter=1000, tol=1e-7, warm_start=False, verbose=0):
        super().__init__()
        self.alpha = alpha
        self.groups = groups
        self.weights = weights
        self.tol = tol
        self.max_iter = max_iter
        self.max_inner_iter = max_inner_iter
        self.warm_start = warm_start
        self.verbose = verbose

    def fit(self, X, y):
        """Fit the model according to the given training data.

        Parameters
        ----------
        X : array-like, shape (n_samples, n_features)
            Training data, where n_samples is the number of samples and
            n_features is the number of features.

        y : array-like, shape (n_samples,)
            Target vector relative to X.

        Returns
        -------
        self :
            Fitted estimator.
        """
        X, y = _validate(self, X, y)
        n_features = X.shape[1]

        if self.warm_start and getattr(self, "coef_", None) is not None:
            w = self.coef_.copy()
        else:
            w = np.zeros(n_features)

        if self.weights is None:
            alphas = self.alpha
        else:
            alphas = self.alpha * np.asarray(self.weights, dtype=np.float64)

        options = CDOptions(max_iter=self.max_iter, tol=self.tol, verbose=self.verbose)
        self.status_ = group_lasso_raw(
            w, X, y, self.groups, alphas, options, max_inner_iter=self.max_inner_iter)
        self.coef_ = w
        self.intercept_ = 0.
        return self
