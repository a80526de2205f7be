"""
Engine Errors
-------------
Failures that cross the service boundary. Validation problems are NOT here:
they are returned as data by `fitplan.utils.validation` and recovered locally
by falling back to a scaled template.
"""


class PlanEngineError(Exception):
    """Base class for errors surfaced to callers of the engine."""


class CollaboratorFailure(PlanEngineError):
    """
    The generative customization service failed (network, quota, or an
    unparseable response). The whole batch is aborted and nothing is
    persisted, so the caller can retry it as a unit.
    """

    retryable = True


class PlanNotFound(PlanEngineError):
    """No plan (or profile) exists for the requested user/date."""


class RateLimited(PlanEngineError):
    def __init__(self, message: str, wait_seconds: int = 0):
        super().__init__(message)
        self.wait_seconds = wait_seconds
