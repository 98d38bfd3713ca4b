"""
Stored Record Model
One row per (collection, id) holding the full JSON record.
"""

from sqlalchemy import Column, String, JSON

from vidlock.core.database import Base


class StoredRecord(Base):
    """Keyed JSON record used by the SQL store backend."""
    
    __tablename__ = "records"
    
    collection = Column(String, primary_key=True)  # jobs, characters, snapshots
    id = Column(String, primary_key=True)
    
    data = Column(JSON, default={})
    
    # ISO-8601 copy of data["createdAt"], used for recency ordering
    created_at = Column(String, default="", index=True)
