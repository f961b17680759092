from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from storefront.data.database import Base
from storefront.data.models._columns import new_id, utcnow


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)

    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # upsert target, one line per product per user
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="u_cart_user_product"),)
