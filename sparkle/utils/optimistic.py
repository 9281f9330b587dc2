"""
Optimistic local mutation with rollback.

Usage::

    with optimistic(lambda: self._items, self._replace, drop(item_id)):
        await api.delete(item_id)

The mutated state is visible while the block runs; if the block raises
(including cancellation) the pre-mutation snapshot is restored and the
exception propagates.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

T = TypeVar("T")


@contextmanager
def optimistic(
    get_state: Callable[[], T],
    set_state: Callable[[T], None],
    mutate: Callable[[T], T],
) -> Iterator[T]:
    snapshot = get_state()
    set_state(mutate(snapshot))
    try:
        yield snapshot
    except BaseException:
        set_state(snapshot)
        raise
