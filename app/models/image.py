from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text

from app.core.database import Base
from app.models.user import PrimaryKey, utcnow


class Image(Base):
    __tablename__ = "images"

    id = Column(PrimaryKey, primary_key=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    prompt = Column(Text, nullable=False)
    image_url = Column(String(1024), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
