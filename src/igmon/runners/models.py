"""Data models for monitor runs.

This module defines:
- The structured results a run produces (UserDiff, ResultPayload)
- The log lines surfaced while it runs (LogLine)
- The single terminal value ending a run (RunSuccess, RunFailure)
- The lifecycle of a run (RunState, FailureKind)

Results are frozen Pydantic models so they can be validated straight from the
monitor's JSON; everything else uses frozen dataclasses with slots.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from igmon.constants import LOG_TAGS
from igmon.exceptions import ResultDecodeError

__all__ = [
    "UserDiff",
    "ResultPayload",
    "LogLine",
    "RunState",
    "FailureKind",
    "RunSuccess",
    "RunFailure",
    "RunOutcome",
    "StreamItem",
    "DIFF_GROUPS",
]

_TAG_PATTERN = re.compile(r"^\[(?P<tag>[A-Z]+)\]")


class UserDiff(BaseModel):
    """One category of follower changes for a target account.

    Attributes:
        target: Account the diff was computed for.
        users: Usernames in the order the monitor reported them.
    """

    model_config = ConfigDict(frozen=True)

    target: str = ""
    users: tuple[str, ...] = ()


class ResultPayload(BaseModel):
    """Summary of one monitor run, as carried by the results line.

    JSON keys are camelCase (``newFollowers``, ``outputZipBase64``...);
    attributes are snake_case. Missing diff groups default to empty.

    Attributes:
        new_followers: Accounts that started following the target.
        new_following: Accounts the target started following.
        unfollowed_by: Accounts that stopped following the target.
        unfollowed_you: Accounts the target stopped following.
        not_following_you_back: Followed accounts not following back.
        mutual_following: Accounts following each other with the target.
        downloaded_media_count: Number of media files downloaded.
        output_zip_base64: Base64-encoded zip archive of all outputs.
        generated_files: Names of the files inside the archive.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    new_followers: UserDiff = Field(default_factory=UserDiff)
    new_following: UserDiff = Field(default_factory=UserDiff)
    unfollowed_by: UserDiff = Field(default_factory=UserDiff)
    unfollowed_you: UserDiff = Field(default_factory=UserDiff)
    not_following_you_back: UserDiff = Field(default_factory=UserDiff)
    mutual_following: UserDiff = Field(default_factory=UserDiff)
    downloaded_media_count: int = Field(default=0, ge=0)
    output_zip_base64: str | None = None
    generated_files: tuple[str, ...] | None = None

    @classmethod
    def empty(cls) -> ResultPayload:
        """Safe default used when a run fails: nothing changed, nothing saved."""
        return cls(output_zip_base64="", generated_files=())

    @property
    def target(self) -> str:
        """Target account of the run, taken from the new-followers group."""
        return self.new_followers.target

    def diff_groups(self) -> list[tuple[str, UserDiff]]:
        """Return (title, diff) pairs in display order."""
        return [(title, getattr(self, name)) for name, title in DIFF_GROUPS]

    def archive_bytes(self) -> bytes | None:
        """Decode the output archive.

        Returns:
            The zip archive bytes, or None when the run produced no archive.

        Raises:
            ResultDecodeError: If the archive is not valid base64.
        """
        if not self.output_zip_base64:
            return None
        try:
            return base64.b64decode(self.output_zip_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ResultDecodeError(f"Output archive is not valid base64: {e}") from e


#: Attribute name and display title of each diff group
DIFF_GROUPS: tuple[tuple[str, str], ...] = (
    ("new_followers", "New Followers"),
    ("new_following", "New Following"),
    ("unfollowed_by", "Unfollowed By Target"),
    ("unfollowed_you", "Unfollowed You"),
    ("not_following_you_back", "Not Following You Back"),
    ("mutual_following", "Mutual Following"),
)


@dataclass(frozen=True, slots=True)
class LogLine:
    """A single line of monitor output.

    Attributes:
        content: Line text, stripped, never empty and never containing a newline.
    """

    content: str

    @property
    def level(self) -> str | None:
        """Leading ``[TAG]`` of the line if it is a known log tag."""
        match = _TAG_PATTERN.match(self.content)
        if match and match.group("tag") in LOG_TAGS:
            return match.group("tag")
        return None

    @property
    def is_error(self) -> bool:
        """True if the line reports an error or a critical failure."""
        return "[ERROR]" in self.content or "[CRITICAL]" in self.content

    def __str__(self) -> str:
        return self.content


class RunState(str, Enum):
    """Lifecycle of a run; DONE and FAILED are terminal."""

    INITIALIZING = "initializing"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.DONE, RunState.FAILED)


class FailureKind(str, Enum):
    """Why a run ended without results."""

    TIMEOUT = "timeout"
    RUNTIME_UNAVAILABLE = "runtime-unavailable"
    DECODE_ERROR = "decode-error"
    UNEXPECTED_TERMINATION = "unexpected-termination"
    PROCESS_ERROR = "process-error"
    INTERNAL_ERROR = "internal-error"


@dataclass(frozen=True, slots=True)
class RunSuccess:
    """Terminal value of a run that delivered its results.

    Attributes:
        payload: The decoded results.
    """

    payload: ResultPayload

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RunFailure:
    """Terminal value of a run that failed.

    Attributes:
        kind: Failure category.
        message: Human-readable explanation.
        detail: Diagnostic context (raw results line, output tail...).
        payload: Safe default results so rendering never lacks a value.
    """

    kind: FailureKind
    message: str
    detail: str | None = None
    payload: ResultPayload = field(default_factory=ResultPayload.empty)

    @property
    def success(self) -> bool:
        return False


RunOutcome = RunSuccess | RunFailure

#: Items produced by a run stream: log lines, then exactly one outcome
StreamItem = LogLine | RunSuccess | RunFailure
