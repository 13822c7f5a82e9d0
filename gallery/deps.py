from functools import lru_cache
from typing import Iterator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from gallery.database import SessionLocal
from gallery.models import Gallery
from gallery.utils.image_variants import VariantPipeline

def get_db() -> Iterator[Session]:
    db: Session = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_gallery(gallery_path: str, db: Session = Depends(get_db)) -> Gallery:
    """Look up the gallery named by the ``gallery_path`` route parameter."""
    gallery = db.query(Gallery).filter(Gallery.path == gallery_path).one_or_none()
    if not gallery:
        raise HTTPException(status_code=404, detail="Gallery not found")
    return gallery

@lru_cache(maxsize=1)
def get_pipeline() -> VariantPipeline:
    return VariantPipeline()
