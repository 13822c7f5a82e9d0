from datetime import datetime
from sqlalchemy import JSON, Column, DateTime, Integer, String

from gallery.database import Base

class Gallery(Base):
    __tablename__ = "galleries"
    id          = Column(Integer, primary_key=True)
    path        = Column(String, unique=True, nullable=False)
    title       = Column(String)
    # gallery-level option overrides, merged between version defaults and image options
    options     = Column(JSON, default=dict, nullable=False)
    # list of SourceImage dicts, in display order
    images      = Column(JSON, default=list, nullable=False)
    # bumping this invalidates every cached variant of the gallery
    updated_at  = Column(DateTime, default=datetime.utcnow, nullable=False)
