"""
Append-only history of trade lifecycle events
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text
from sqlalchemy.sql import func

from bitacora.core.database import Base


class HistoryEventRecord(Base):
    """One row per create/edit/roll/close/delete action. Never updated."""

    __tablename__ = "trade_history"

    id = Column(Integer, primary_key=True, index=True)
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    event_type = Column(String(16), nullable=False)  # Creation, Edit, Roll, Close, Deletion
    trade_id = Column(Integer, nullable=True, index=True)
    ticker = Column(String(16), nullable=False, index=True)
    premium = Column(Float, nullable=False, default=0.0)
    commission = Column(Float, nullable=False, default=0.0)
    closing_cost = Column(Float, nullable=False, default=0.0)
    strike_price = Column(Float, nullable=False, default=0.0)
    status = Column(String(16), nullable=False)
    note = Column(Text, nullable=True)
