from models.scan import QrScan
from models.simlok_sequence import SimlokSequence
from models.submission import Submission, SupportDocument, WorkerEntry

__all__ = [
    "QrScan",
    "SimlokSequence",
    "Submission",
    "SupportDocument",
    "WorkerEntry",
]
