from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String(64), primary_key=True, index=True)
    vendor_name = Column(String(256), nullable=False)
    officer_name = Column(String(256), nullable=False)
    job_description = Column(Text, nullable=True)
    work_location = Column(Text, nullable=True)
    work_facilities = Column(Text, nullable=True)

    review_status = Column(String(32), nullable=False, default="PENDING_REVIEW", index=True)
    approval_status = Column(String(32), nullable=False, default="PENDING_APPROVAL", index=True)

    implementation_start_date = Column(Date, nullable=True)
    implementation_end_date = Column(Date, nullable=True)
    working_hours = Column(String(128), nullable=True)
    holiday_working_hours = Column(String(128), nullable=True)
    # Permit period and body templates edited by the reviewer
    implementation = Column(Text, nullable=True)
    content = Column(Text, nullable=True)

    note_for_approver = Column(Text, nullable=True)
    note_for_vendor = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    simlok_number = Column(String(64), nullable=True, unique=True, index=True)
    simlok_date = Column(Date, nullable=True)

    worker_count = Column(Integer, nullable=False, default=0)
    # Bumped on every write; stale writers get a 409
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    worker_list = relationship(
        "WorkerEntry",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="WorkerEntry.position",
    )
    support_documents = relationship(
        "SupportDocument",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SupportDocument.position",
    )


class WorkerEntry(Base):
    __tablename__ = "worker_entries"

    id = Column(String(64), primary_key=True, index=True)
    submission_id = Column(String(64), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    worker_name = Column(String(256), nullable=False)
    worker_photo = Column(String(512), nullable=True)
    hsse_pass_number = Column(String(128), nullable=True)
    hsse_pass_valid_thru = Column(Date, nullable=True)
    hsse_pass_document_upload = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    submission = relationship("Submission", back_populates="worker_list")


class SupportDocument(Base):
    __tablename__ = "support_documents"

    id = Column(String(64), primary_key=True, index=True)
    submission_id = Column(String(64), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    document_type = Column(String(32), nullable=False, index=True)
    document_subtype = Column(String(128), nullable=True)
    document_number = Column(String(128), nullable=False)
    document_date = Column(Date, nullable=True)
    document_upload = Column(String(512), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    submission = relationship("Submission", back_populates="support_documents")
