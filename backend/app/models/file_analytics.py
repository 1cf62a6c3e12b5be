"""
FileAnalytics model: per-object usage accounting.

One row per object key, created when the upload lands in the object store.
Counters only ever grow; rows are never removed when the object is deleted,
so the ledger reflects historical usage rather than current existence.
"""
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Index
from sqlalchemy.sql import func

from app.models.base import Base


class FileAnalytics(Base):
    """
    Usage counters for a stored object.

    Attributes:
        id: Surrogate primary key
        object_key: Storage key of the object (unique)
        original_name: Filename as declared by the uploader
        mimetype: Sniffed MIME type of the content
        size: Object size in bytes
        upload_time: When the upload was recorded
        download_count: Number of served reads (full or partial)
        bandwidth_usage: Total bytes served across all reads
        last_access_time: Time of the most recent read (None until first read)
    """
    __tablename__ = "file_analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)

    object_key = Column(String(1024), nullable=False, unique=True)
    original_name = Column(String(1024), nullable=False)
    mimetype = Column(String(255), nullable=False)

    # File sizes can be large
    size = Column(BigInteger, nullable=False)

    upload_time = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    download_count = Column(Integer, nullable=False, default=0, server_default="0")
    bandwidth_usage = Column(BigInteger, nullable=False, default=0, server_default="0")
    last_access_time = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_file_analytics_mimetype', 'mimetype'),
        Index('ix_file_analytics_download_count', 'download_count'),
    )

    def __repr__(self):
        return (
            f"<FileAnalytics(object_key={self.object_key}, "
            f"downloads={self.download_count}, bandwidth={self.bandwidth_usage})>"
        )
