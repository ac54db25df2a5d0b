from __future__ import annotations

from typing import List, Optional

CODE_SPACE = 256


class ValueCache:
    """Last durably written raw value per metric code.

    ``initial`` is what ``get`` reports for a code that was never committed.
    The default of ``0`` matches the reference daemon, which means a first
    raw reading of 0 is treated as unchanged. Pass ``None`` to use an
    explicit "no prior value" marker instead.
    """

    def __init__(self, initial: Optional[int] = 0) -> None:
        self.initial = initial
        self._written: List[Optional[int]] = [initial] * CODE_SPACE
        self._seen: List[Optional[int]] = [None] * CODE_SPACE

    def get(self, code: int) -> Optional[int]:
        return self._written[self._slot(code)]

    def is_changed(self, code: int, raw: int) -> bool:
        return self.get(code) != raw

    def commit(self, code: int, raw: int) -> None:
        """Record ``raw`` after the sink confirmed the write."""
        self._written[self._slot(code)] = raw

    def observe(self, code: int, raw: int) -> None:
        """Shadow the latest value of a diagnostic-only code."""
        self._seen[self._slot(code)] = raw

    def last_seen(self, code: int) -> Optional[int]:
        return self._seen[self._slot(code)]

    @staticmethod
    def _slot(code: int) -> int:
        if not 0 <= code < CODE_SPACE:
            raise ValueError(f"Metric code {code!r} is outside 0..255.")
        return code


def build_cache(dispatch_first_zero: bool = False) -> ValueCache:
    return ValueCache(initial=None if dispatch_first_zero else 0)
