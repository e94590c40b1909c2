import math
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.database import get_db
from app.core.deps import get_current_user, get_generator, get_storage
from app.core.logger import get_logger
from app.core.security import TokenClaims
from app.models.image import Image
from app.schemas.image import GlobalImagePage, ImageListResponse, ImageResponse, SavedImage, UserImagePage
from app.schemas.response import ApiResponse
from app.services.gemini import GenerationError, SourceImage, fetch_image
from app.services.storage import base64_data_uri, to_data_uri

router = APIRouter(prefix="/api/image", tags=["Images"])

logger = get_logger(__name__)


def _save_image(db: Session, user_id: int, prompt: str, image_url: str) -> Image:
    image = (
        db.query(Image)
        .filter(Image.user_id == user_id, Image.prompt == prompt)
        .first()
    )
    if image:
        image.image_url = image_url
    else:
        image = Image(user_id=user_id, prompt=prompt, image_url=image_url)
        db.add(image)
    db.commit()
    db.refresh(image)
    return image


def _find_owned_image(db: Session, image_id: int, user_id: int) -> Optional[Image]:
    return db.query(Image).filter(Image.id == image_id, Image.user_id == user_id).first()


def _update_image(db: Session, image: Image, text: Optional[str], image_url: Optional[str]) -> Image:
    if text:
        image.prompt = text
    if image_url:
        image.image_url = image_url
    db.commit()
    db.refresh(image)
    return image


@router.post("/createimage", status_code=201, response_model=ApiResponse[SavedImage])
async def create_image(
    prompt: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None, alias="imageUrl"),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
    storage=Depends(get_storage),
    generator=Depends(get_generator),
):
    prompt_text = (prompt or "").strip()
    if not prompt_text and not file and not image_url:
        raise HTTPException(status_code=400, detail="Prompt or image is required")

    final_url = None
    source = None

    if file:
        raw = await file.read()
        mime_type = file.content_type or "image/jpeg"
        final_url = await storage.upload(to_data_uri(raw, mime_type))
        source = SourceImage.from_bytes(raw, mime_type)

    try:
        if not final_url and image_url:
            final_url = image_url
            source = await fetch_image(image_url)

        prompt_in_db = f"{final_url} {prompt_text}".strip() if final_url else prompt_text

        if prompt_text:
            result = await generator.generate(prompt_text, source)
            if result.image_base64 is None:
                return JSONResponse(
                    status_code=200,
                    content={
                        "success": False,
                        "message": "The model returned text instead of an image. Try rephrasing your prompt.",
                        "data": {"text": result.text},
                    },
                )
            final_url = await storage.upload(base64_data_uri(result.image_base64))
    except GenerationError as e:
        logger.error("image_generation_failed", user_id=current_user.user_id, error=e.message)
        content = {"success": False, "message": e.message}
        if e.payload is not None:
            content["data"] = e.payload
        return JSONResponse(status_code=500, content=content)

    image = await run_in_threadpool(_save_image, db, current_user.user_id, prompt_in_db, final_url)

    logger.info("image_saved", user_id=current_user.user_id, image_id=image.id)
    return {
        "success": True,
        "message": "Image saved successfully",
        "data": {"id": image.id, "prompt": image.prompt, "imageUrl": image.image_url},
    }


@router.put("/update/{id}", response_model=ApiResponse[ImageResponse])
async def update_image(
    id: int,
    text: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None, alias="imageUrl"),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
    storage=Depends(get_storage),
):
    if not text and not file and not image_url:
        raise HTTPException(status_code=400, detail="Text or image is required")

    image = await run_in_threadpool(_find_owned_image, db, id, current_user.user_id)
    if not image:
        raise HTTPException(status_code=404, detail="Image not found")

    uploaded_url = None
    if file:
        raw = await file.read()
        uploaded_url = await storage.upload(to_data_uri(raw, file.content_type or "image/jpeg"))
    if image_url:
        uploaded_url = image_url

    image = await run_in_threadpool(_update_image, db, image, text, uploaded_url)

    return {
        "success": True,
        "message": "Image updated successfully",
        "data": image,
    }


@router.get("/getimage", response_model=ImageListResponse)
def get_images(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    images = (
        db.query(Image)
        .filter(Image.user_id == current_user.user_id)
        .order_by(Image.created_at.asc(), Image.id.asc())
        .all()
    )
    return {
        "success": True,
        "message": "Images fetched successfully",
        "data": images,
    }


@router.get("/getimagebyuser", response_model=UserImagePage)
def get_images_by_user(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    query = db.query(Image).filter(Image.user_id == current_user.user_id)
    total = query.count()
    images = (
        query.order_by(Image.created_at.desc(), Image.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "message": "Images fetched successfully",
        "data": images,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
            "hasNextPage": page * limit < total,
            "hasPrevPage": page > 1,
        },
    }


@router.get("/getallimages", response_model=GlobalImagePage)
def get_all_images(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
):
    total = db.query(Image).count()
    images = (
        db.query(Image)
        .order_by(Image.created_at.desc(), Image.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "message": "All images fetched successfully",
        "data": images,
        "pagination": {
            "totalItems": total,
            "totalPages": math.ceil(total / limit),
            "page": page,
            "limit": limit,
        },
    }
