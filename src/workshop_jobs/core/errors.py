"""Error taxonomy shared by the store and the core engine."""


class WorkshopError(Exception):
    """Base class for every error the user can be told about."""


class ValidationError(WorkshopError):
    """Required input missing or malformed; nothing was sent to the store."""


class PreconditionError(WorkshopError):
    """The operation is not allowed in the job's current state."""


class TimerAlreadyRunningError(PreconditionError):
    """A time entry for the job is still open."""

    def __init__(self, job_id: str):
        super().__init__("A timer is already running for this job")
        self.job_id = job_id
