# ============================================================
# Module : channelstore/services/cascade.py
# Objet  : Fan-out borné pour les suppressions en cascade.
# Invariants :
#  - au plus `max_workers` appels simultanés.
#  - la première erreur interrompt la cascade (pas de retry);
#    les tâches non démarrées sont annulées.
# ============================================================
"""Exécution concurrente bornée des suppressions de payloads object store."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import TypeVar

from channelstore.core.constants import DEFAULT_CASCADE_CONCURRENCY

T = TypeVar("T")


def bounded_fan_out(
    items: Iterable[T],
    fn: Callable[[T], object],
    max_workers: int = DEFAULT_CASCADE_CONCURRENCY,
) -> int:
    """Applique `fn` à chaque item avec au plus `max_workers` appels en vol.

    Returns:
        int: nombre d'items traités.

    Raises:
        ValueError: si max_workers < 1.
        Exception: la première erreur levée par `fn`, telle quelle.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    todo = list(items)
    if not todo:
        return 0
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cascade-delete")
    try:
        futures: list[Future] = [executor.submit(fn, item) for item in todo]
        done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
        for fut in futures:
            if fut in done and fut.exception() is not None:
                raise fut.exception()  # type: ignore[misc]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
    return len(todo)
