from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gallery.errors import VersionResolutionError
from gallery.utils.variant_spec import check_relative

GALLERY_PATH_PATTERN = r"^[\w-]+(/[\w-]+)*$"
VERSION_PATTERN      = r"^[\w-]+$"


class SourceImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    file:    str = ""
    version: str = Field(default="full", pattern=VERSION_PATTERN)
    alt:     str = ""
    src:     Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("file")
    @classmethod
    def _file_stays_in_gallery(cls, value: str) -> str:
        if value:
            try:
                check_relative("Image file", value)
            except VersionResolutionError as exc:
                raise ValueError(str(exc)) from None
        return value

    @model_validator(mode="after")
    def _file_or_src(self) -> "SourceImage":
        if not self.file and not self.src:
            raise ValueError("an image needs either a file or a src")
        return self


class GalleryContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    path:       str
    updated_at: Optional[datetime] = None


class GalleryIn(BaseModel):
    path:    str = Field(pattern=GALLERY_PATH_PATTERN)
    title:   Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    images:  List[SourceImage] = Field(default_factory=list)


class GalleryUpdate(BaseModel):
    title:   Optional[str] = None
    options: Optional[Dict[str, Any]] = None
    images:  Optional[List[SourceImage]] = None


class GalleryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:         int
    path:       str
    title:      Optional[str] = None
    options:    Dict[str, Any]
    images:     List[SourceImage]
    updated_at: datetime


class PhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    file:          str
    version:       str
    alt:           str
    src:           Optional[str] = None
    full_src:      Optional[str] = None
    columns_count: int
    column_class:  str
    wrap_in_row:   bool
