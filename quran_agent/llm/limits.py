"""Per-model output-token caps, looked up by substring of the model id."""

from __future__ import annotations

from quran_agent.config import DEFAULT_OUTPUT_TOKEN_LIMITS

DEFAULT_MAX_OUTPUT_TOKENS = 4096


class OutputTokenLimits:
    """
    Resolve the ``max_tokens`` to request for a model.

    Matching is case-insensitive and the longest matching pattern wins, so
    ``"openai/gpt-4o-mini"`` resolves via ``gpt-4o-mini`` rather than
    ``gpt-4``.  Unknown models get *default*.
    """

    def __init__(
        self,
        table: dict[str, int] | None = None,
        default: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        source = DEFAULT_OUTPUT_TOKEN_LIMITS if table is None else table
        self._table = {k.lower(): int(v) for k, v in source.items()}
        self.default = default

    def for_model(self, model: str) -> int:
        name = (model or "").lower()
        best: str | None = None
        for pattern in self._table:
            if pattern in name and (best is None or len(pattern) > len(best)):
                best = pattern
        return self._table[best] if best is not None else self.default

    def as_dict(self) -> dict[str, int]:
        return dict(self._table)
