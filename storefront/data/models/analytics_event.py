from sqlalchemy import Column, String, DateTime, JSON

from storefront.data.database import Base
from storefront.data.models._columns import new_id, utcnow


class AnalyticsEventModel(Base):
    __tablename__ = "analytics_events"

    id = Column(String(36), primary_key=True, default=new_id)
    event_name = Column(String, nullable=False)
    session_id = Column(String, nullable=False)
    user_id = Column(String(36), nullable=True)
    product_id = Column(String(36), nullable=True)
    order_id = Column(String(36), nullable=True)
    path = Column(String, nullable=True)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
