class RootsError(Exception):
    """Base exception for family-network failures."""


class ConfigurationError(RootsError):
    """Raised when configuration values are invalid."""


class InvalidFamily(RootsError):
    """Raised when the nuclear family cannot be used at all."""


class FamilyNotFound(RootsError):
    """Raised when no text block exists for a family ID."""

    def __init__(self, family_id: str):
        super().__init__(f"Family '{family_id}' not found")
        self.family_id = family_id


class ParsingFailed(RootsError):
    """Raised when family text cannot be turned into a Family."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to parse family: {reason}")
        self.reason = reason


class InvalidReference(RootsError):
    """A tag that is present but is not a registered family ID (inert text)."""

    def __init__(self, tag: str):
        super().__init__(f"'{tag}' is not a registered family ID")
        self.tag = tag


class AmbiguousReference(RootsError):
    """More than one person in a resolved family matches the referenced subject."""

    def __init__(self, subject: str, candidate_count: int):
        super().__init__(f"{candidate_count} candidates match '{subject}'")
        self.subject = subject
        self.candidate_count = candidate_count


class SubjectNotFound(RootsError):
    """The resolved family has nobody matching the referenced subject."""

    def __init__(self, subject: str, family_id: str):
        super().__init__(f"'{subject}' not found in {family_id}")
        self.subject = subject
        self.family_id = family_id


class ResolutionCancelled(RootsError):
    """Raised by the workflow when a running resolution was cancelled."""
