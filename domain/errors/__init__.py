"""Error taxonomy shared by every layer of groupfinder."""
from __future__ import annotations


class GroupFinderError(Exception):
    """Base class for all errors raised by groupfinder."""


class InvalidQuery(GroupFinderError):
    """Malformed retrieval input, e.g. blank text where text is required."""


class EmbeddingFailure(GroupFinderError):
    """The embedding provider failed or returned a malformed vector."""


class BackendUnavailable(GroupFinderError):
    """The catalog/vector index could not be reached or errored."""


class ExternalCapabilityFailure(GroupFinderError):
    """Preference extraction, clarification or reply generation failed."""


class TurnTimeout(ExternalCapabilityFailure):
    """A turn did not finish within the caller-imposed deadline."""


class InvalidMessage(GroupFinderError):
    """The user message of a turn was missing or blank."""


class CatalogError(GroupFinderError):
    """The group catalog file or an index payload is malformed."""


class ConfigurationError(GroupFinderError):
    """An unknown component was requested from the container."""


__all__ = [
    "GroupFinderError",
    "InvalidQuery",
    "EmbeddingFailure",
    "BackendUnavailable",
    "ExternalCapabilityFailure",
    "TurnTimeout",
    "InvalidMessage",
    "CatalogError",
    "ConfigurationError",
]
