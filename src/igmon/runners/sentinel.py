"""Results line protocol.

The external monitor reports its results on a single line of its output:

    RESULTS_JSON:{"newFollowers": {"target": "x", "users": []}, ...}

Everything here is pure so it can be tested without a process or an event
loop. Surrounding whitespace is ignored when matching the prefix.
"""

from __future__ import annotations

from pydantic import ValidationError

from igmon.constants import RESULTS_PREFIX
from igmon.exceptions import ResultDecodeError
from igmon.runners.models import ResultPayload

__all__ = ["RESULTS_PREFIX", "is_sentinel", "decode_sentinel", "encode_sentinel"]

# Raw line context kept on decode errors
_MAX_RAW_LINE = 2000


def is_sentinel(line: str) -> bool:
    """Return True if ``line`` is a results line."""
    return line.strip().startswith(RESULTS_PREFIX)


def decode_sentinel(line: str) -> ResultPayload:
    """Decode the payload of a results line.

    Args:
        line: Candidate line, with or without trailing newline.

    Returns:
        The validated ResultPayload.

    Raises:
        ResultDecodeError: If the line has no results prefix, or its payload
            is not valid JSON, or does not match the results schema.
    """
    stripped = line.strip()
    if not stripped.startswith(RESULTS_PREFIX):
        raise ResultDecodeError(
            f"Line does not start with {RESULTS_PREFIX!r}",
            raw_line=stripped[:_MAX_RAW_LINE],
        )

    payload = stripped[len(RESULTS_PREFIX) :]
    try:
        return ResultPayload.model_validate_json(payload)
    except ValidationError as e:
        first_error = e.errors()[0]
        location = ".".join(str(loc) for loc in first_error["loc"])
        where = f" at {location}" if location else ""
        raise ResultDecodeError(
            f"Could not decode run results{where}: {first_error['msg']}",
            raw_line=stripped[:_MAX_RAW_LINE],
        ) from e


def encode_sentinel(payload: ResultPayload) -> str:
    """Serialize ``payload`` as a results line (without trailing newline)."""
    return RESULTS_PREFIX + payload.model_dump_json(by_alias=True)
