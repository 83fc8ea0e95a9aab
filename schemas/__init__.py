from schemas.forms import ApprovalForm, ReviewForm
from schemas.scan import QrScanSchema, ScanHistory
from schemas.submission import (
    ApprovalDecision,
    ApprovalStatus,
    DocumentType,
    ReviewDecision,
    ReviewStatus,
    SubmissionCreate,
    SubmissionSchema,
    SubmissionUpdate,
    SupportDocumentSchema,
    WorkerEntrySchema,
)
from schemas.validation import FieldError, ValidationResult

__all__ = [
    "ApprovalDecision",
    "ApprovalForm",
    "ApprovalStatus",
    "DocumentType",
    "FieldError",
    "QrScanSchema",
    "ReviewDecision",
    "ReviewForm",
    "ReviewStatus",
    "ScanHistory",
    "SubmissionCreate",
    "SubmissionSchema",
    "SubmissionUpdate",
    "SupportDocumentSchema",
    "ValidationResult",
    "WorkerEntrySchema",
]
