"""
Upload bookkeeping models.

The actual file bytes live in the storage bucket, never in the database.

Lifecycle:
1. Signed URL issued -> PendingUpload row created
2. Client PUTs the bytes directly to storage
3. Client confirms -> CompletedUpload row created, PendingUpload row deleted
   (same transaction)
4. Signed URL expires without confirmation -> PendingUpload swept
"""
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Index
from sqlalchemy.sql import func

from direct_upload.models.base import Base


class PendingUpload(Base):
    """
    Provisional record: a write was authorized but not yet confirmed.

    Attributes:
        generated_filename: Random storage name, primary key
        original_filename: Name declared by the client
        bucket: Bucket the signed URL writes to
        folder: Destination folder inside the bucket
        size: Declared size in bytes
        mime_type: Declared content type
        signed_url: The presigned PUT URL handed to the client
        object_url: Where the object will be reachable once written
        expires_at: When the signed URL stops being valid
        created_at: When the signed URL was issued
    """
    __tablename__ = "pending_uploads"

    generated_filename = Column(String, primary_key=True)
    original_filename = Column(String, nullable=False)
    bucket = Column(String, nullable=True)
    folder = Column(String, nullable=False, default="")
    size = Column(BigInteger().with_variant(Integer, "sqlite"), nullable=False)
    mime_type = Column(String, nullable=False)
    signed_url = Column(String, nullable=False)
    object_url = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Index for the expiry sweep
    __table_args__ = (
        Index('ix_pending_uploads_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return (
            f"<PendingUpload(filename={self.generated_filename}, "
            f"original={self.original_filename}, expires_at={self.expires_at})>"
        )


class CompletedUpload(Base):
    """
    Permanent record of an upload confirmed by the client.

    Keyed by the generated filename so that promoting the same pending
    upload twice never produces two rows.
    """
    __tablename__ = "completed_uploads"

    stored_name = Column(String, primary_key=True)
    original_filename = Column(String, nullable=False)
    size = Column(BigInteger().with_variant(Integer, "sqlite"), nullable=False)
    mime_type = Column(String, nullable=False)
    object_url = Column(String, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self):
        return f"<CompletedUpload(name={self.stored_name}, url={self.object_url})>"
