"""Record and blob store access."""

from .base import Order, RecordStore, Row, asc, desc
from .blob import BlobStore, LocalBlobStore, public_url
from .sql import SqlRecordStore

__all__ = [
    "BlobStore", "LocalBlobStore", "public_url",
    "Order", "RecordStore", "Row", "asc", "desc",
    "SqlRecordStore",
]
