"""
SQLAlchemy ORM models for MySQL database.

Purpose:
- Define Fanclub and Member (presence record) tables
- Use SQLAlchemy async-compatible models

Production notes:
- members(lat, lon) is indexed so the bounding-box prefilter of proximity
  queries stays cheap; exact distance is filtered in Python.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Index
from core.db import Base
from datetime import datetime


class FanclubRow(Base):
    """A fan-club members belong to (fanclub_id is immutable on a member)."""
    __tablename__ = "fanclubs"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class MemberRow(Base):
    """
    Presence record of a member.

    Columns:
    - name: unique identifier (primary key)
    - fanclub_id: owning fan-club
    - lat/lon: last-known location
    - online: last-known connectivity flag
    - push_token: opaque push delivery address
    """
    __tablename__ = "members"

    name = Column(String(100), primary_key=True)
    fanclub_id = Column(String(64), ForeignKey("fanclubs.id"), nullable=False, index=True)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)
    online = Column(Boolean, default=False, nullable=False)
    push_token = Column(String(512), nullable=True)
    profile_url = Column(String(1024), nullable=True)
    points = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_members_lat_lon", "lat", "lon"),)
