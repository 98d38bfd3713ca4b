# Database models package
from vidlock.models.record import StoredRecord

__all__ = ["StoredRecord"]
