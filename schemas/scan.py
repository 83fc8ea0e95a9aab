from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class QrScanSchema(BaseModel):
    id: str
    scanned_by: Optional[str] = None
    scan_location: Optional[str] = None
    scanned_at: Optional[datetime] = None


class ScanHistory(BaseModel):
    scans: list[QrScanSchema] = Field(default_factory=list)
    total_scans: int = 0
    last_scan: Optional[QrScanSchema] = None
    has_been_scanned: bool = False
