"""Exception types raised while building and writing IDX documents."""

from __future__ import annotations


class IdxError(Exception):
    """Base error carrying a structured kind, message and offending reference.

    Args:
        message: Human readable description.
        reference: Id or name of the offending entity, if any.
        field: Name of the offending field on that entity, if any.
    """

    kind = "IdxError"

    def __init__(self, message: str, reference: str | None = None, field: str | None = None):
        self.message = message
        self.reference = reference
        self.field = field
        detail = message
        if reference is not None:
            where = f"{reference}.{field}" if field else reference
            detail = f"{message} [{where}]"
        super().__init__(detail)


class ConfigurationError(IdxError):
    """Contradictory or missing configuration, e.g. a board with no Z extent."""

    kind = "ConfigurationError"


class IdxReferenceError(IdxError):
    """An entity references an id that is absent from its table."""

    kind = "ReferenceError"


class GeometryError(IdxError):
    """Degenerate input geometry."""

    kind = "GeometryError"


class UnsupportedFeatureError(IdxError):
    """An input entity kind has no output mapping."""

    kind = "UnsupportedFeatureError"


class InternalSerializationError(IdxError):
    """The document graph violated a builder invariant during serialization."""

    kind = "InternalSerializationError"
