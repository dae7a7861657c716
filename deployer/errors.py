from typing import Optional


class DeployerError(Exception):
    """Base error; ``status_code`` is what the synchronous API answers with."""
    status_code = 500


class ValidationError(DeployerError):
    status_code = 400


class Unauthorized(DeployerError):
    status_code = 401


class Misconfigured(DeployerError):
    status_code = 500


class PublishError(DeployerError):
    def __init__(self, message: str, status: Optional[int] = None, strategy: str = ""):
        super().__init__(message)
        self.status = status
        self.strategy = strategy

    @property
    def is_authorization(self) -> bool:
        return self.status in (401, 403)


class NotificationFailure(DeployerError):
    pass
