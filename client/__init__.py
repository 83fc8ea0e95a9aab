"""Client side of the submission workflow: store access, live sync, actions and drafts."""
from client.errors import DecodeError, ReviewPhaseError, StoreError, SubmissionConflict, SubmissionNotFound
from client.store_client import SubmissionStoreClient
from client.sync import SyncController
from client.workflow import ActionOutcome, OutcomeStatus, SubmissionWorkflow

__all__ = [
    "ActionOutcome",
    "DecodeError",
    "OutcomeStatus",
    "ReviewPhaseError",
    "StoreError",
    "SubmissionConflict",
    "SubmissionNotFound",
    "SubmissionStoreClient",
    "SubmissionWorkflow",
    "SyncController",
]
