"""
Thread-pooled per-literal naming.

ConcurrentKeyNamer wraps a per-literal namer (usually
OpenAIKeyGenerator). The first time the rewriter asks for a literal, a
request is submitted to the pool and a provisional heuristic key is
returned at once; later requests for the same (literal, path) reuse the
in-flight future instead of issuing a duplicate request.

drain() is the barrier between the naming pass and the rewrite pass:
it waits for every outstanding request. name_keys() then turns the
finished futures into the final literal -> key mapping.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Iterable, Optional, Sequence

from i18n_extract.errors import NamingBatchFailure, NamingError
from i18n_extract.naming.base import ContextKeyNamer, KeyNamer, ensure_unique

logger = logging.getLogger(__name__)


class ConcurrentKeyNamer(KeyNamer):
    """Names literals one by one on a thread pool.

    Args:
        generator: Namer whose name_key() performs one blocking request
        max_workers: Thread pool size
    """

    requires_second_pass = True

    def __init__(self, generator: KeyNamer, max_workers: int = 4):
        self.generator = generator
        self.max_workers = max(1, max_workers)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._in_flight: dict[tuple[str, str], Future] = {}
        self._provisional = ContextKeyNamer()

    @property
    def name(self) -> str:
        return f"concurrent({self.generator.name})"

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="i18n-naming",
            )
        return self._executor

    def submit(self, literal: str, file_path: str = "") -> Future:
        """Start naming literal unless a request for it is already running."""
        memo_key = (literal, file_path)
        with self._lock:
            future = self._in_flight.get(memo_key)
            if future is None:
                future = self._get_executor().submit(self.generator.name_key, literal, file_path)
                self._in_flight[memo_key] = future
        return future

    def name_key(self, literal: str, file_path: str = "") -> str:
        self.submit(literal, file_path)
        return self._provisional.name_key(literal, file_path)

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for f in self._in_flight.values() if not f.done())

    def drain(self) -> None:
        """Block until every submitted request has finished."""
        with self._lock:
            futures = list(self._in_flight.values())
        if futures:
            logger.debug("Waiting for %d naming requests", len(futures))
            wait(futures)

    def name_keys(
        self,
        literals: Sequence[str],
        reserved: Iterable[str] = (),
    ) -> dict[str, str]:
        """Collect finished keys for literals.

        Literals never submitted are submitted now. When a literal was
        seen in several files, the first file's answer wins. Raises
        NamingBatchFailure when not a single request succeeded.
        """
        literals = list(dict.fromkeys(literals))
        if not literals:
            return {}

        with self._lock:
            seen = {literal for literal, _ in self._in_flight}
        for literal in literals:
            if literal not in seen:
                self.submit(literal)
        self.drain()

        with self._lock:
            items = list(self._in_flight.items())

        mapping: dict[str, str] = {}
        failures = 0
        wanted = set(literals)
        for (literal, _path), future in items:
            if literal not in wanted or literal in mapping:
                continue
            try:
                mapping[literal] = future.result()
            except NamingError as e:
                failures += 1
                logger.warning("%s", e)

        if not mapping and failures:
            raise NamingBatchFailure(f"{self.generator.name}: all {failures} naming requests failed")

        ordered = {literal: mapping[literal] for literal in literals if literal in mapping}
        return ensure_unique(ordered, reserved)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.generator.close()
