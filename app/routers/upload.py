from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from app.core.deps import get_storage
from app.schemas.image import UploadResponse
from app.services.storage import UPLOADS_FOLDER, UploadError, to_data_uri

router = APIRouter(prefix="/api/imageupload", tags=["Upload"])


@router.post("/upload", status_code=201, response_model=UploadResponse)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    storage=Depends(get_storage),
):
    if not image:
        return JSONResponse(status_code=400, content={"message": "No file uploaded"})

    raw = await image.read()
    try:
        url = await storage.upload(to_data_uri(raw, image.content_type or "image/jpeg"), UPLOADS_FOLDER)
    except UploadError as e:
        return JSONResponse(status_code=500, content={"message": "Upload failed", "error": str(e)})

    return {"imageUrl": url}
