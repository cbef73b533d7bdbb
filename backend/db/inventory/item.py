from sqlalchemy import Column, Integer, String, Text

from ..database import Base


class InventoryItemRow(Base):
    __tablename__ = "inventory"

    id = Column(String, primary_key=True)

    article = Column(String, nullable=False, index=True)
    location1 = Column(Text, nullable=False)
    location2 = Column(Text, nullable=True)

    # 'in-stock' | 'out-of-stock'; written from stock, never read back
    status1 = Column(Text, nullable=False, default="out-of-stock")
    status2 = Column(Text, nullable=True)

    stock1 = Column(Integer, nullable=False, default=0)
    stock2 = Column(Integer, nullable=False, default=0)

    barcode = Column(Text, nullable=True, index=True)
