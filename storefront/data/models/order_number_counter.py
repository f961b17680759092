from sqlalchemy import Column, Integer

from storefront.data.database import Base


class OrderNumberCounterModel(Base):
    """Last order number handed out per year, bumped in one upsert."""

    __tablename__ = "order_number_counters"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
