"""
exceptions.py - Error types raised by the persona / bundle pipeline.

AI-classifier failures and catalog fetch failures never surface here; they
are recovered where they happen. Everything below is something a caller is
expected to handle.
"""


class PersonaBundlesError(Exception):
    """Base class for persona detection and bundle recommendation errors."""


class EmptyInputError(PersonaBundlesError):
    """Neither text nor a voice transcript was supplied for detection."""


class UnknownPersonaError(PersonaBundlesError):
    """A recommendation request named a persona that is not in the persona table."""

    def __init__(self, persona: str):
        self.persona = persona
        super().__init__(f"Unknown persona: {persona!r}")


class PersonaTableError(PersonaBundlesError):
    """The static persona or strategy tables failed validation at startup."""


class CatalogError(PersonaBundlesError):
    """A catalog provider could not return products."""


class NoProductsAvailableError(PersonaBundlesError):
    """Both the live catalog and the static fallback catalog are empty."""


class RecommendationFailedError(PersonaBundlesError):
    """Unexpected failure while assembling a recommendation (see __cause__)."""
