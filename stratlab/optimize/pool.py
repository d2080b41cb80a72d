"""Run independent evaluations on a thread pool, collecting failures."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Hashable, Mapping, TypeVar

T = TypeVar("T")


def describe_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def run_all(
    tasks: Mapping[Hashable, Callable[[], T]],
    max_workers: int | None = None,
) -> tuple[dict[Hashable, T], dict[Hashable, Exception]]:
    """Evaluate every task; one failure never aborts the others.

    Parameters
    ----------
    tasks : mapping
        Key to zero-argument callable.
    max_workers : int, optional
        Pool size.  ``1`` runs the tasks in-process, in order.

    Returns
    -------
    (results, errors)
        Both keyed like *tasks* and in *tasks* order; a key appears in
        exactly one of them.  Errors hold the raised exception;
        format them with :func:`describe_error`.
    """
    results: dict[Hashable, Any] = {}
    errors: dict[Hashable, Exception] = {}
    if max_workers == 1:
        for key, fn in tasks.items():
            try:
                results[key] = fn()
            except Exception as e:
                errors[key] = e
        return results, errors

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {key: pool.submit(fn) for key, fn in tasks.items()}
        for key, fut in futures.items():
            try:
                results[key] = fut.result()
            except Exception as e:
                errors[key] = e
    return results, errors
