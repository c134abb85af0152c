"""Vector <-> text codec for the book embedding column.

Vectors are stored as compact JSON arrays. Python's float repr is the shortest
string that round-trips, so decode(encode(v)) == v exactly.
"""

from __future__ import annotations

import json
import math
from typing import Sequence

from shelf.core.exceptions import MalformedVectorError


def encode(vector: Sequence[float]) -> str:
    """Serialize a vector to its persisted text form."""
    return json.dumps([float(x) for x in vector], separators=(",", ":"))


def decode(text: str | None, dimensions: int | None = None) -> list[float]:
    """Parse persisted vector text.

    Raises MalformedVectorError on anything that is not a non-empty JSON array
    of finite numbers, or whose length differs from ``dimensions`` when given.
    Never truncates or pads.
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedVectorError("empty vector text")
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise MalformedVectorError(f"invalid JSON: {e}") from e

    if not isinstance(data, list) or not data:
        raise MalformedVectorError(f"expected a non-empty array, got {type(data).__name__}")

    vector: list[float] = []
    for i, x in enumerate(data):
        # bool is an int subclass; true/false in a vector is corruption
        if isinstance(x, bool) or not isinstance(x, (int, float)):
            raise MalformedVectorError(f"element {i} is not a number: {x!r}")
        try:
            value = float(x)
        except OverflowError as e:
            raise MalformedVectorError(f"element {i} out of range") from e
        if not math.isfinite(value):
            raise MalformedVectorError(f"element {i} is not finite: {x!r}")
        vector.append(value)

    if dimensions is not None and len(vector) != dimensions:
        raise MalformedVectorError(
            f"dimension mismatch: expected {dimensions}, got {len(vector)}"
        )
    return vector
