class BuildInfoError(Exception):
    """Base class for build info assembly failures."""


class BuildInfoConfigurationError(BuildInfoError):
    """The extractor configuration could not be written; the build step cannot continue."""


class BuildInfoDeployError(BuildInfoError):
    """The repository server rejected or never received the build info."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
