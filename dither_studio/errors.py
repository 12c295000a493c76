"""Exception hierarchy shared by the transform library and the executor."""

from __future__ import annotations

from typing import List, Sequence


class DitherStudioError(Exception):
    """Base class for every error raised by the package."""


class ParameterError(DitherStudioError, ValueError):
    """A transform was invoked with parameters it cannot work with."""


class GraphFormatError(DitherStudioError, ValueError):
    """A serialized graph description could not be decoded."""


class ValidationError(DitherStudioError):
    """A pipeline graph is structurally invalid.

    All violations are collected so callers can surface every problem at once.
    """

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("Graph validation failed:\n" + "\n".join(self.errors))


class ExecutionError(DitherStudioError):
    """A node failed while the graph was running."""

    def __init__(self, node_id: str, cause: BaseException) -> None:
        self.node_id = node_id
        self.cause = cause
        super().__init__(f"Node {node_id!r} failed: {cause}")


class InternalConsistencyError(DitherStudioError, AssertionError):
    """The executor reached a state validation should have ruled out."""


class SourceFetchError(DitherStudioError, RuntimeError):
    """The upstream image source could not be fetched or decoded."""


class SourceTooLargeError(DitherStudioError, ValueError):
    """A source image has more pixels than the service is configured to accept."""


class SourceNotAllowedError(DitherStudioError, ValueError):
    """A request named a source host the service is not configured to fetch from."""
