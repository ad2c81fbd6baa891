"""
Identity tables.
Profiles (role, active flag) live in the record store under users/{uid};
these tables only hold what the identity provider owns.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from perfhub.database import Base


class Credential(Base):
    __tablename__ = "credentials"

    uid = Column(String(64), primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    is_disabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    sessions = relationship("UserSession", back_populates="credential", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Credential {self.email}>"


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String(64), ForeignKey("credentials.uid"), nullable=False, index=True)
    refresh_token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    is_revoked = Column(Boolean, default=False, nullable=False)

    credential = relationship("Credential", back_populates="sessions")
