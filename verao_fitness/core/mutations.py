"""
Mutation pattern shared by every create/update/delete operation.

1. show an in-flight indicator
2. run exactly one write (optionally preceded by one upload)
3. on success invalidate the dependent query keys and show a success toast
4. on failure show an error toast and leave the cache alone
5. always dismiss the in-flight indicator, once

Nothing is retried; a failed mutation has to be resubmitted by the user.
"""

import inspect
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence

from verao_fitness.core.cache import QueryCache, QueryKey
from verao_fitness.core.errors import AppError, RemoteWriteError, friendly_message
from verao_fitness.core.notifications import Notifier
from verao_fitness.services.logger import logger


@contextmanager
def in_flight(notifier: Notifier, message: str) -> Iterator[str]:
    toast_id = notifier.loading(message)
    try:
        yield toast_id
    finally:
        notifier.dismiss(toast_id)


async def run_mutation(
    *,
    notifier: Notifier,
    cache: QueryCache,
    write: Callable[[], Any],
    invalidate: Sequence[QueryKey],
    loading: str,
    success: str,
    error_message: Optional[str] = None,
) -> Any:
    """Run ``write`` following the mutation pattern and return its result.

    ``write`` may be sync or async. ``error_message`` replaces backend text
    for write failures that have no friendlier mapping. AppError raised by
    ``write`` is re-raised with its user-facing message set.
    """
    with in_flight(notifier, loading):
        try:
            result = write()
            if inspect.isawaitable(result):
                result = await result
        except AppError as exc:
            fallback = error_message if isinstance(exc, RemoteWriteError) else None
            exc.message = friendly_message(exc, fallback=fallback)
            notifier.error(exc.message)
            logger.info(
                f"Mutation failed for {notifier.owner}: {exc.message}"
                + (f" ({exc.detail})" if exc.detail else "")
            )
            raise

        cache.invalidate(*invalidate)
        notifier.success(success)
        return result
