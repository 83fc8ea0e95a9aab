from sqlalchemy import Column, DateTime, ForeignKey, String, func

from database import Base


class QrScan(Base):
    __tablename__ = "qr_scans"

    id = Column(String(64), primary_key=True, index=True)
    submission_id = Column(String(64), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    scanned_by = Column(String(256), nullable=True)
    scan_location = Column(String(256), nullable=True)
    scanned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
