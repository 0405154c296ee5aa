"""
Trade model for database storage
"""
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text
from sqlalchemy.sql import func
from bitacora.core.database import Base

class TradeRecord(Base):
    """Persisted option trade"""
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    ticker = Column(String(16), nullable=False, index=True)
    strategy = Column(String(50), nullable=False, default="")
    start_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)
    close_date = Column(Date, nullable=True)
    share_count = Column(Integer, nullable=False, default=0)
    strike_price = Column(Float, nullable=False, default=0.0)
    premium_received = Column(Float, nullable=False, default=0.0)
    total_premium = Column(Float, nullable=True)
    commission = Column(Float, nullable=False, default=0.0)
    closing_cost = Column(Float, nullable=False, default=0.0)
    status = Column(String(16), nullable=False, default="Open")  # Open, Closed, Rolled, Expired, Cancelled
    close_price = Column(Float, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
