"""Query parameter builder shared by the upstream clients."""

from __future__ import annotations

from typing import Any


def build_query_params(**kwargs: Any) -> list[tuple[str, str]]:
    """Turn keyword arguments into httpx query pairs, dropping None values."""
    return [(key, str(value)) for key, value in kwargs.items() if value is not None]
