import math
from typing import Iterable, NamedTuple, Sequence

import numpy as np
import polars as pl
from scipy import stats
from tqdm import tqdm

from trendfit import config


class TrendFitError(ValueError):
    """Base class for errors raised when fitting a trend."""


class InsufficientDataError(TrendFitError):
    """Fewer observations than coefficients to estimate."""


class DegenerateFitError(TrendFitError):
    """Design matrix is rank deficient, no unique least squares solution."""


class NumericOverflowError(TrendFitError):
    """Values too large to represent the polynomial in float64."""


class Observation(NamedTuple):
    x: float
    y: float


class PolynomialModel:
    """Univariate polynomial regression, fit by least squares.

    The fit is done on a centered and scaled copy of x, so the design matrix
    stays well conditioned for inputs like latitudes or years. `beta` holds the
    coefficients in the original x basis, lowest degree first.

    ## parameters
    - samples (DataFrame): observations, one row each.
    - degree (int): polynomial degree. Default: 4
    - x (str): name of the independent variable column.
    - target (str): name of the dependent variable column.
    - verbose (bool): print fit diagnostics.
    """

    def __init__(
        self,
        samples: pl.DataFrame,
        degree: int = config.DEFAULT_DEGREE,
        x: str = "x",
        target: str = "y",
        verbose=False,
    ) -> None:
        if degree < 1:
            raise ValueError(f"Degree must be at least 1, not {degree}")

        n_coef = degree + 1
        if len(samples) < n_coef:
            raise InsufficientDataError(
                f"Needs more samples: {len(samples)} < {degree} + 1"
            )

        self.degree = degree
        self.feature = x
        self.target = target

        self.x = samples[x].cast(pl.Float64).to_numpy()
        self.y = samples[target].cast(pl.Float64).to_numpy()

        _check_finite(self.x, x)
        _check_finite(self.y, target)

        n_distinct = len(np.unique(self.x))
        if n_distinct < n_coef:
            raise DegenerateFitError(
                f"Needs {n_coef} distinct values of {x}, got {n_distinct}"
            )

        # map x onto [-1, 1]
        x_min, x_max = self.x.min(), self.x.max()
        self.x_range = (float(x_min), float(x_max))
        self.shift = (x_max + x_min) / 2
        self.scale = (x_max - x_min) / 2
        if not (math.isfinite(self.shift) and math.isfinite(self.scale)):
            raise NumericOverflowError(f"Range of {x} overflows float64")

        self.X_poly = polynomial_features(self._standardize(self.x), degree)

        self._fit(verbose=verbose)

    def __str__(self) -> str:
        lines = [
            f"Polynomial model (degree: {self.degree})",
            f"{len(self.y)} samples, {self.df} residual df",
            f"R2: {self.r2:.4f}, p-value: {self.p_value:.4g}",
        ]
        return "\n".join(lines)

    def _standardize(self, x: np.ndarray) -> np.ndarray:
        return (x - self.shift) / self.scale

    def _fit(self, verbose=False):
        """Fit model by least squares, and compute goodness of fit."""
        X = self.X_poly
        y = self.y
        M, N = X.shape

        if verbose:
            print(f"{M} samples\n{N} poly features")

        beta, _, rank, sing = np.linalg.lstsq(X, y, rcond=None)

        if rank < N:
            raise DegenerateFitError(
                f"Rank deficient design matrix: rank {rank} < {N}"
            )

        self.beta_scaled = _frozen(beta)
        self.beta = _frozen(self._unscale(beta))

        self.residuals = y - X @ beta
        self.df = M - N

        ss_res = float(self.residuals @ self.residuals)
        ss_tot = float(((y - y.mean()) ** 2).sum())

        self.r2 = 1 - ss_res / ss_tot if ss_tot > 0 else math.nan

        # saturated fit: no residual degrees of freedom left for inference
        if self.df == 0:
            self.sigma = math.nan
            self.f_statistic = math.nan
            self.p_value = math.nan
        elif ss_res > 0:
            self.sigma = math.sqrt(ss_res / self.df)
            self.f_statistic = ((ss_tot - ss_res) / self.degree) / (ss_res / self.df)
            self.p_value = float(stats.f.sf(self.f_statistic, self.degree, self.df))
        else:
            self.sigma = 0.0
            self.f_statistic = math.inf if ss_tot > 0 else math.nan
            self.p_value = 0.0 if ss_tot > 0 else math.nan

        if verbose:
            print(f"condition: {sing[0] / sing[-1]:.3g}")
            print(f"coefficients: {self.beta}, R2: {self.r2}")

    def _unscale(self, beta_scaled: np.ndarray) -> np.ndarray:
        """Coefficients of the same polynomial in the original x basis."""
        z = np.polynomial.Polynomial([-self.shift / self.scale, 1 / self.scale])
        raw = np.polynomial.Polynomial(beta_scaled)(z).coef

        beta = np.zeros(self.degree + 1)
        beta[: len(raw)] = raw

        if not np.isfinite(beta).all():
            raise NumericOverflowError(
                f"Coefficients overflow float64 for {self.feature} in {self.x_range}"
            )
        return beta

    @property
    def polynomial(self) -> np.polynomial.Polynomial:
        return np.polynomial.Polynomial(self.beta)

    @property
    def yhat(self) -> np.ndarray:
        """Prediction of training data"""
        return self.X_poly @ self.beta_scaled

    def predict(self, x_values: float | Sequence[float] | np.ndarray):
        """Evaluate the fitted polynomial, scalar in gives scalar out."""
        x_arr = np.asarray(x_values, dtype=float)
        y_pred = horner(self.beta_scaled, self._standardize(x_arr))

        if x_arr.ndim == 0:
            return float(y_pred)
        return y_pred

    def predict_frame(self, samples: pl.DataFrame) -> pl.DataFrame:
        """Predict new samples, adds a `y_pred` column."""
        y_pred = self.predict(samples[self.feature].cast(pl.Float64).to_numpy())
        return samples.with_columns(y_pred=pl.Series(y_pred))

    def curve(self, steps: int = 200) -> pl.DataFrame:
        """Evaluate the fit on an even grid over the fitted x range."""
        grid = np.linspace(*self.x_range, steps)
        return pl.DataFrame({"x": grid, "y_pred": self.predict(grid)})

    def summary(self) -> dict:
        return {
            "degree": self.degree,
            "n": len(self.y),
            "df": self.df,
            "coefficients": self.beta.tolist(),
            "r2": self.r2,
            "f_statistic": self.f_statistic,
            "p_value": self.p_value,
            "sigma": self.sigma,
        }


def polynomial_features(x: np.ndarray, d: int) -> np.ndarray:
    """Create polynomial features of terms up to a degree (including constant).
    ## parameters
    - x (ndarray): values of the single feature, shape (N,)
    - d (int): maximum degree
    ## returns
    - X_new (ndarray): design matrix, shape (N, d + 1), columns x^0 .. x^d
    """
    x = np.asarray(x, dtype=float)
    X_new = np.empty((len(x), d + 1))
    X_new[:, 0] = 1  # constant term

    for p in range(1, d + 1):
        X_new[:, p] = X_new[:, p - 1] * x

    return X_new


def horner(coefs: Sequence[float], x: np.ndarray) -> np.ndarray:
    """Evaluate a polynomial with coefficients lowest degree first."""
    result = np.zeros_like(x, dtype=float)
    for c in reversed(coefs):
        result = result * x + c
    return result


def fit(
    observations: Iterable[Observation | tuple[float, float]],
    degree: int = config.DEFAULT_DEGREE,
    verbose=False,
) -> PolynomialModel:
    """Fit a polynomial trend to (x, y) pairs."""
    xs, ys = [], []
    for x, y in observations:
        xs.append(float(x))
        ys.append(float(y))

    samples = pl.DataFrame(
        {"x": xs, "y": ys},
        schema={"x": pl.Float64, "y": pl.Float64},
    )
    return PolynomialModel(samples, degree, verbose=verbose)


def predict(
    model: PolynomialModel,
    x_values: float | Sequence[float] | np.ndarray,
):
    return model.predict(x_values)


def fit_frame(
    samples: pl.DataFrame,
    x: str,
    y: str,
    degree: int = config.DEFAULT_DEGREE,
    verbose=False,
) -> PolynomialModel:
    return PolynomialModel(samples, degree, x=x, target=y, verbose=verbose)


def fit_with_fallback(
    samples: pl.DataFrame | Iterable[Observation],
    degree: int = config.DEFAULT_DEGREE,
    min_degree: int = 1,
    x: str = "x",
    y: str = "y",
    verbose=False,
) -> PolynomialModel:
    """Fit the highest degree in [min_degree, degree] the data supports.

    Only insufficient or degenerate data triggers a lower degree, anything
    else propagates. If no degree works the last error is raised.
    """
    if min_degree > degree:
        raise ValueError(f"min_degree ({min_degree}) > degree ({degree})")

    if not isinstance(samples, pl.DataFrame):
        samples = list(samples)

    error = None
    for d in range(degree, min_degree - 1, -1):
        try:
            if isinstance(samples, pl.DataFrame):
                return fit_frame(samples, x, y, d, verbose=verbose)
            return fit(samples, d, verbose=verbose)
        except (InsufficientDataError, DegenerateFitError) as e:
            if verbose:
                print(f"degree {d} failed ({e}), trying lower")
            error = e

    raise error


def fit_groups(
    samples: pl.DataFrame,
    by: str,
    x: str,
    y: str,
    degree: int = config.DEFAULT_DEGREE,
    fallback: bool = False,
    verbose=False,
) -> dict[str, PolynomialModel]:
    """Fit one independent model per group.

    ## returns
    - models (dict[str, PolynomialModel]): keyed by group value, sorted.
    """
    models = {}
    groups = samples.sort(by).group_by(by, maintain_order=True)

    for key, group in tqdm(groups, disable=not verbose):
        if isinstance(key, tuple):
            key = key[0]
        if fallback:
            models[key] = fit_with_fallback(group, degree, x=x, y=y, verbose=verbose)
        else:
            models[key] = fit_frame(group, x, y, degree, verbose=verbose)

    return models


def _check_finite(values: np.ndarray, name: str):
    if np.isnan(values).any():
        raise ValueError(f"Missing or NaN values in {name}")
    if np.isinf(values).any():
        raise NumericOverflowError(f"Infinite values in {name}")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=float)
    arr.flags.writeable = False
    return arr
