class WorkflowError(Exception):
    """A failure the user sees as one human-readable message."""

    status = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationFailed(WorkflowError):
    status = 400


class NoRecordSelected(WorkflowError):
    status = 400


class StepLocked(WorkflowError):
    status = 409


class OperationInProgress(WorkflowError):
    status = 409


class OperationFailed(WorkflowError):
    status = 502


class RecordMissing(WorkflowError):
    status = 404
