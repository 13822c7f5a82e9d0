from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from gallery.api.galleries import router as galleries_router
from gallery.config import GALLERY_ROOT, IMAGES_URL_PREFIX
from gallery.database import init_db

init_db()

app = FastAPI(title="Gallery API")
app.include_router(galleries_router)
app.mount(IMAGES_URL_PREFIX, StaticFiles(directory=GALLERY_ROOT, check_dir=False), name="images")
