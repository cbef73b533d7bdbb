from sqlalchemy import Column, DateTime, Integer, String, Text

from ..database import Base


class InventoryLogRow(Base):
    __tablename__ = "logs"

    id = Column(String, primary_key=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    # Copied from the item at write time, not a foreign key
    article = Column(String, nullable=False)
    location = Column(Text, nullable=False)

    operation = Column(Text, nullable=False)  # 'add' | 'remove'
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    user = Column(Text, nullable=True)
