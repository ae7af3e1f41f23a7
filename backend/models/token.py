# backend/models/token.py
from sqlalchemy import Column, Integer, String, DateTime
from database import Base

# Tokens revoked by logout; rows are only relevant until expires_at
class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
