# backend/models/log.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index, func
from sqlalchemy.orm import relationship
from database import Base

# Audit trail of storefront events, written by utils.audit.write_log and read by GET /logs.
# action names the event: REGISTER, LOGIN, LOGOUT, PROFILE_UPDATE, CATEGORY_*/PRODUCT_* mutations,
# STOCK_RESTOCK, CART_ADD/UPDATE/REMOVE/CLEAR and ORDER_CREATE.
# resource is the API area it belongs to (auth, categories, products, cart, orders).
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Anonymous for failed logins of unknown emails; kept when the account is deleted
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="SUCCESS", index=True)  # SUCCESS or FAIL
    ip = Column(String(64), nullable=True)

    # Event details, e.g. {"order_id": 7, "total_amount": 250.0, "items": 2}
    meta = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined", uselist=False)

    __table_args__ = (
        # GET /logs?user_id=... lists one user's history newest first
        Index("ix_logs_user_ts", "user_id", "ts"),
    )
