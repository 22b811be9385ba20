"""
Admin Module - Models
======================
StoreSettings: branding singleton (name, logo, colors, contact)
HomePageContent: home page marketing copy singleton
RequestLog: HTTP request audit trail
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from sqlalchemy.sql import func
from config.database import Base


class StoreSettings(Base):
    __tablename__ = "store_settings"

    id = Column(Integer, primary_key=True)
    store_name_ar = Column(String, nullable=False, default="جملة")
    store_name_fr = Column(String, nullable=True, default="Jomla")
    logo_url = Column(String, nullable=True)
    primary_color = Column(String(16), nullable=False, default="#0f766e")
    secondary_color = Column(String(16), nullable=False, default="#f59e0b")
    contact_phone = Column(String(20), nullable=True)
    contact_email = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StoreSettings {self.store_name_ar}>"


class HomePageContent(Base):
    __tablename__ = "home_page_content"

    id = Column(Integer, primary_key=True)
    hero_title_ar = Column(String, nullable=False, default="")
    hero_title_fr = Column(String, nullable=True)
    hero_subtitle_ar = Column(Text, nullable=True)
    hero_subtitle_fr = Column(Text, nullable=True)
    hero_image_url = Column(String, nullable=True)
    cta_text_ar = Column(String, nullable=True)
    cta_text_fr = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# ==========================================
# Request Audit Log
# ==========================================

class RequestLog(Base):
    __tablename__ = "request_logs"

    id = Column(Integer, primary_key=True)
    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False)
    query_string = Column(Text, nullable=True)
    status_code = Column(Integer, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    user_id = Column(Integer, nullable=True)
    is_admin = Column(Integer, default=0, nullable=False)
    body_preview = Column(Text, nullable=True)        # form body, truncated, secrets masked
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_reqlog_created", "created_at"),
        Index("ix_reqlog_path", "path"),
    )
