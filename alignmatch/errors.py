"""Exception types raised by the matching engine."""


class AlignMatchError(Exception):
    """Base class for all AlignMatch errors."""


class ConfigurationError(AlignMatchError):
    """Settings file or weight table is invalid."""


class RepositoryError(AlignMatchError):
    """Storage layer could not serve a request."""


class ScoringError(AlignMatchError):
    """A single pair could not be scored (e.g. malformed stored payload)."""

    def __init__(self, user_a_id: str, user_b_id: str, reason: str):
        self.user_a_id = user_a_id
        self.user_b_id = user_b_id
        self.reason = reason
        super().__init__(f"Cannot score {user_a_id} <-> {user_b_id}: {reason}")


class InvalidPayloadError(RepositoryError):
    """Stored data for a user no longer decodes into the profile models."""

    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Invalid stored payload for {user_id}: {reason}")
