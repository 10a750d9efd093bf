"""Fire-and-forget execution of notifications and exports.

Side effects never influence the outcome of the request that scheduled
them: every failure is logged and counted, then dropped.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from app.config import settings
from app.observability import log_event, metrics_store


class SideEffectRunner:
    def __init__(self, max_workers: int, inline: bool = False) -> None:
        self.inline = inline
        self._executor: ThreadPoolExecutor | None = None
        if not inline:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="side-effect"
            )

    def _run(
        self,
        name: str,
        fn: Callable[..., Any],
        args: tuple,
        order_id: int | None,
        product_id: int | None,
    ) -> None:
        try:
            fn(*args)
        except Exception:
            metrics_store.increment("side_effect_failures_total")
            log_event(
                f"side_effect_failed name={name}",
                level=logging.WARNING,
                order_id=order_id,
                product_id=product_id,
                exc_info=True,
            )
            return
        metrics_store.increment("side_effects_completed_total")

    def submit(
        self,
        name: str,
        fn: Callable[..., Any],
        *args: Any,
        order_id: int | None = None,
        product_id: int | None = None,
    ) -> Future | None:
        if self._executor is None:
            self._run(name, fn, args, order_id, product_id)
            return None
        return self._executor.submit(self._run, name, fn, args, order_id, product_id)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


_runner: SideEffectRunner | None = None


def get_side_effect_runner() -> SideEffectRunner:
    global _runner
    if _runner is None:
        _runner = SideEffectRunner(
            max_workers=settings.side_effects_max_workers,
            inline=settings.side_effects_inline,
        )
    return _runner


def shutdown_side_effect_runner() -> None:
    global _runner
    if _runner is not None:
        _runner.shutdown()
        _runner = None
