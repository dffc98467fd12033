"""Error types reported back to tool callers."""


class TrackerError(Exception):
    """Base class for failures surfaced to the caller as a single error payload."""

    code = "tracker_error"

    def to_dict(self) -> dict[str, str]:
        return {"error": str(self), "code": self.code}


class InvalidInput(TrackerError, ValueError):
    """A required argument is missing or malformed. Raised before any remote call."""

    code = "invalid_input"


class NotFound(TrackerError):
    """An identifier does not resolve to any record."""

    code = "not_found"


class UpstreamFailure(TrackerError):
    """The tracker raised, returned a non-success result, or broke a uniqueness expectation."""

    code = "upstream_failure"


class AmbiguousState(TrackerError):
    """A state synonym could not be mapped to a workflow state of the team."""

    code = "ambiguous_state"
