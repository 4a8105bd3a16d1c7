"""Objective evaluation: one result type, one guarded call path."""

import math
import numbers
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Mapping

import torch

from ..exceptions import ObjectiveEvaluationError


@dataclass(frozen=True)
class EvaluationResult:
    """
    Scalar score of one objective evaluation plus optional auxiliary data.

    The optimizer only reads `score`; `aux` is carried into the history.
    """

    score: float
    aux: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record, score_key='Score'):
        """Build from a dict-style fitness record such as {'Score': ..., 'Pred': ...}."""
        aux = {k: v for k, v in record.items() if k != score_key}
        return cls(score=record[score_key], aux=aux)


def _call(fn, x, bounds):
    if bounds.named:
        return fn(**bounds.to_params(x))
    return fn(x.clone())


def coerce_result(raw, where=''):
    """
    Convert an objective's return value into an EvaluationResult.

    Accepts EvaluationResult, real scalars (Python, numpy) and single-element tensors.
    """
    if isinstance(raw, EvaluationResult):
        result = raw
    elif torch.is_tensor(raw) and raw.numel() == 1:
        result = EvaluationResult(float(raw.detach().reshape(())))
    elif isinstance(raw, numbers.Real) and not isinstance(raw, bool):
        result = EvaluationResult(float(raw))
    else:
        raise ObjectiveEvaluationError(
            f"Objective returned unsupported type {type(raw).__name__}{where}; "
            "expected a real scalar or EvaluationResult"
        )

    try:
        value = float(result.score)
    except (TypeError, ValueError):
        raise ObjectiveEvaluationError(
            f"Objective score {result.score!r} is not a real number{where}"
        ) from None
    if not math.isfinite(value):
        raise ObjectiveEvaluationError(f"Objective returned non-finite value {value}{where}")
    if type(result.score) is not float:
        result = EvaluationResult(value, result.aux)
    return result


def evaluate_objective(fn, x, bounds, timeout=None):
    """
    Call the objective at x and validate its result.

    Named bounds call fn(**params); unnamed bounds call fn(x) with a 1-D
    float64 tensor.

    Args:
        fn: Objective callable
        x: Point (D,)
        bounds: Bounds of the search space
        timeout: Seconds to wait for the call; None waits indefinitely

    Returns:
        EvaluationResult

    Raises:
        ObjectiveEvaluationError: fn raised, timed out, or returned a
            non-finite or unsupported value
    """
    where = f" at {bounds.to_params(x)}"
    try:
        if timeout is None:
            raw = _call(fn, x, bounds)
        else:
            # the worker cannot be interrupted; on timeout it is abandoned
            executor = ThreadPoolExecutor(max_workers=1)
            try:
                raw = executor.submit(_call, fn, x, bounds).result(timeout=timeout)
            finally:
                executor.shutdown(wait=False)
    except FuturesTimeoutError:
        raise ObjectiveEvaluationError(f"Objective timed out after {timeout}s{where}") from None
    except ObjectiveEvaluationError:
        raise
    except Exception as exc:
        raise ObjectiveEvaluationError(
            f"Objective raised {type(exc).__name__}: {exc}{where}"
        ) from exc
    return coerce_result(raw, where)
