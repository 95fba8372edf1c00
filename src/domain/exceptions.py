from typing import Optional


class MirrorServiceException(Exception):
    """Base exception for all mirror-service errors."""
    pass

class ConfigurationException(MirrorServiceException):
    """Raised when organization or application settings cannot be resolved."""
    pass

class GitHubApiException(MirrorServiceException):
    """Raised when a GitHub REST call fails."""
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

class NotFoundException(GitHubApiException):
    """Raised when GitHub answers 404 Not Found."""
    def __init__(self, message: str = "Not Found"):
        super().__init__(message, status=404)

class RateLimitExceededException(GitHubApiException):
    """Raised when the GitHub REST rate limit is hit."""
    def __init__(self, reset_at: str, status: int = 403, message: str = "GitHub API rate limit exceeded."):
        self.reset_at = reset_at
        super().__init__(f"{message} Resets at: {reset_at}", status=status)

class RepositoryAlreadyExistsException(MirrorServiceException):
    """Raised when the requested mirror name is already taken."""
    def __init__(self, owner: str, name: str):
        self.owner = owner
        self.name = name
        super().__init__(f"Repo {owner}/{name} already exists")

class VersionControlException(MirrorServiceException):
    """Raised when a clone, push, remote or branch operation fails."""
    pass

class CompensationFailedException(MirrorServiceException):
    """
    Raised when undoing a partially-applied saga fails.
    Carries the failure that triggered the rollback and the rollback's own error;
    the remote side may hold an orphaned resource.
    """
    def __init__(self, step: str, original: BaseException, compensation_errors: list):
        self.step = step
        self.original = original
        self.compensation_errors = compensation_errors
        super().__init__(
            f"Compensation failed after step '{step}' raised {original!r}: "
            + "; ".join(repr(e) for e in compensation_errors)
        )

class InternalServiceError(MirrorServiceException):
    """Generic failure surfaced to callers, with the original cause attached."""
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
