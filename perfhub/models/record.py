from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from perfhub.database import Base

class Record(Base):
    """One child of a keyed collection, stored as an opaque JSON document."""
    __tablename__ = "records"

    collection = Column(String(64), primary_key=True)
    key = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_records_collection", "collection"),)

    def __repr__(self):
        return f"<Record {self.collection}/{self.key}>"
