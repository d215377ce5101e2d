"""Exceptions raised while normalizing a CPU profile."""


class ProfileError(ValueError):
    """Base class for profiles that cannot be analyzed."""


class InvalidEncoding(ProfileError):
    """Input is not valid (optionally gzipped) UTF-8 JSON."""


class MalformedProfile(ProfileError):
    """Input is valid JSON but lacks one of the required sequences."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f'Invalid profile: missing or invalid "{field}" array')
