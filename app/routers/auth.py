from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import OTP_CLEANUP_DELAY_MS
from app.core.database import get_db
from app.core.deps import get_cipher, get_cleanup_queue, get_mailer
from app.core.queue import DELETE_UNVERIFIED_TASK
from app.core.security import create_access_token
from app.schemas.auth import MessageResponse, SendOtpRequest, ValidateOtpRequest, ValidateOtpResponse
from app.services.otp import OtpError, issue_otp, verify_otp

router = APIRouter(prefix="/api/authusers", tags=["Auth"])


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    data: SendOtpRequest,
    db: Session = Depends(get_db),
    cipher=Depends(get_cipher),
    queue=Depends(get_cleanup_queue),
    mailer=Depends(get_mailer),
):
    try:
        user, otp = await run_in_threadpool(issue_otp, db, cipher, data.email)
    except OtpError as e:
        raise HTTPException(status_code=400, detail=e.message)

    await run_in_threadpool(queue.enqueue, DELETE_UNVERIFIED_TASK, {"email": user.email}, OTP_CLEANUP_DELAY_MS)
    await mailer.send(user.email, otp)

    return {
        "success": True,
        "message": "OTP sent to your email",
    }


@router.post("/validate", response_model=ValidateOtpResponse, response_model_exclude_none=True)
def validate(
    data: ValidateOtpRequest,
    request: Request,
    db: Session = Depends(get_db),
    cipher=Depends(get_cipher),
):
    try:
        user = verify_otp(db, cipher, data.email, data.otp)
    except OtpError as e:
        raise HTTPException(status_code=400, detail=e.message)

    token = create_access_token(user.id, user.email, request.app.state.settings.jwt_secret)

    return {
        "success": True,
        "message": "OTP verified successfully",
        "token": token,
    }
