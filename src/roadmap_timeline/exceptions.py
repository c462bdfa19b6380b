"""Exception hierarchy for Roadmap Timeline."""


class TimelineError(Exception):
    """Base exception for timeline errors."""

    pass


class InvalidConfigError(TimelineError):
    """Configuration is invalid."""

    pass


class InvalidPayloadError(TimelineError):
    """Request payload cannot be turned into timeline input."""

    pass


class LayoutInvariantError(TimelineError):
    """Engine produced geometry that breaks its own invariants.

    Raised only while ``__debug__`` is set; it points at a defect in the
    engine, never at bad input data.
    """

    pass
