from sqlalchemy import Column, String, Text

from .database import Base

COMPANY_LOGO_KEY = "company_logo"


class SettingRow(Base):
    """Key/value application settings (the company logo data-URL lives here)."""
    __tablename__ = "settings"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
