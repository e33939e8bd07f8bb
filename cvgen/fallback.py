"""Generic "first success wins" combinator over ordered strategies."""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence, Tuple, Type, TypeVar

from .errors import FallbackExhausted

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", contravariant=True)
ResultT = TypeVar("ResultT", covariant=True)
R = TypeVar("R")
I = TypeVar("I")


class Strategy(Protocol[InputT, ResultT]):
    """One provider attempt; raises on failure."""

    name: str

    def attempt(self, payload: InputT) -> ResultT:
        ...


def first_success(
    strategies: Sequence[Strategy[I, R]],
    payload: I,
    *,
    exhausted: Type[FallbackExhausted] = FallbackExhausted,
) -> Tuple[str, R]:
    """Run ``strategies`` in order and return ``(name, result)`` of the first that works.

    A strategy fails by raising any ``Exception`` or by returning a falsy result.
    Failures are collected and surfaced through ``exhausted`` once every strategy
    has been tried.
    """
    failures: List[Tuple[str, BaseException]] = []
    for strategy in strategies:
        try:
            result = strategy.attempt(payload)
        except Exception as exc:  # noqa: BLE001 - every provider error means "try the next one"
            logger.warning("Strategy %s failed: %s", strategy.name, exc)
            failures.append((strategy.name, exc))
            continue
        if not result:
            logger.warning("Strategy %s returned an empty result", strategy.name)
            failures.append((strategy.name, ValueError("empty result")))
            continue
        logger.info("Strategy %s succeeded", strategy.name)
        return strategy.name, result
    raise exhausted(failures)
