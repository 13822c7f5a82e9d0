from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gallery.config import logger
from gallery.deps import get_db, get_gallery, get_pipeline
from gallery.models import Gallery
from gallery.schemas import GalleryIn, GalleryOut, GalleryUpdate, PhotoOut
from gallery.utils.image_variants import VariantPipeline

router = APIRouter()


@router.get("/galleries", response_model=list[GalleryOut])
def list_galleries(db: Session = Depends(get_db)):
    return db.query(Gallery).order_by(Gallery.path.asc()).all()


@router.post("/galleries", response_model=GalleryOut, status_code=201)
def create_gallery(payload: GalleryIn, db: Session = Depends(get_db)):
    gallery = Gallery(
        path       = payload.path,
        title      = payload.title,
        options    = payload.options,
        images     = [img.model_dump() for img in payload.images],
        updated_at = datetime.utcnow(),
    )
    try:
        db.add(gallery)
        db.flush()
    except IntegrityError:
        raise HTTPException(status_code=409, detail="A gallery with this path already exists")

    logger.info("Created gallery id=%s path=%s", gallery.id, gallery.path)
    return gallery


@router.get("/galleries/{gallery_path:path}/photos", response_model=list[PhotoOut])
def gallery_photos(
    gallery: Gallery = Depends(get_gallery),
    pipeline: VariantPipeline = Depends(get_pipeline),
):
    return pipeline.process_gallery(gallery, gallery.images, gallery.options)


@router.put("/galleries/{gallery_path:path}", response_model=GalleryOut)
def update_gallery(
    payload: GalleryUpdate,
    gallery: Gallery = Depends(get_gallery),
    db: Session = Depends(get_db),
):
    if payload.title is not None:
        gallery.title = payload.title
    if payload.options is not None:
        gallery.options = payload.options
    if payload.images is not None:
        gallery.images = [img.model_dump() for img in payload.images]
    # any edit may change crops, so cached variants must be rebuilt
    gallery.updated_at = datetime.utcnow()
    db.add(gallery)
    return gallery
