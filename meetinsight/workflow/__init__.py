from .state import Step
from .errors import (
    WorkflowError, ValidationFailed, NoRecordSelected, StepLocked,
    OperationInProgress, OperationFailed, RecordMissing,
)
