from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    user_id: int = Field(serialization_alias="user")
    prompt: str
    image_url: str = Field(serialization_alias="imageUrl")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")


class SavedImage(BaseModel):
    id: int
    prompt: str
    imageUrl: str


class UserPagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int
    hasNextPage: bool
    hasPrevPage: bool


class GlobalPagination(BaseModel):
    totalItems: int
    totalPages: int
    page: int
    limit: int


class ImageListResponse(BaseModel):
    success: bool
    message: str
    data: List[ImageResponse]


class UserImagePage(ImageListResponse):
    pagination: UserPagination


class GlobalImagePage(ImageListResponse):
    pagination: GlobalPagination


class UploadResponse(BaseModel):
    imageUrl: str
