from sqlalchemy import Column, String, DateTime, Numeric, JSON

from storefront.data.database import Base
from storefront.data.models._columns import new_id, utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, index=True)  # null for guest checkout
    order_number = Column(String, nullable=False, unique=True)

    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    shipping_address = Column(JSON, nullable=False)  # snapshot, not a reference
    payment_reference = Column(String, nullable=True, index=True)
    delivery_method = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
