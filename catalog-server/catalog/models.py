"""
SQLAlchemy model for the `products` table.

Products are created outside this service; the model is only used to build
read queries. `id` and `date_added` are assigned by the store.
"""

from sqlalchemy import Column, DateTime, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import ARRAY as PG_ARRAY
from sqlalchemy.sql import func

from catalog.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(Text)
    price = Column(Numeric)
    description = Column(Text)
    categories = Column(PG_ARRAY(Text))
    images = Column(PG_ARRAY(Text))
    referenced_name = Column(Text)
    date_added = Column(DateTime(timezone=True), server_default=func.now())
