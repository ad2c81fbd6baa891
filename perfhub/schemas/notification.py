from typing import Optional

from perfhub.schemas.common import CamelModel, RecordModel, Timestamp


class NotificationResponse(RecordModel):
    user_id: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    read: bool = False
    created_at: Timestamp = None
    related_item_id: Optional[str] = None
    related_item_type: Optional[str] = None


class MarkAllResult(CamelModel):
    updated: int
