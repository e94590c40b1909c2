"""OTP lifecycle for credential records.

A record moves between three states: absent, unverified (holding the
ciphertext of the last issued code) and verified. Requesting a code never
downgrades a verified record, verifying clears the stored code, and the
cleanup path only ever removes records that are still unverified.
"""
import hmac
import re
import secrets
from typing import Any, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.crypto import OtpCipher
from app.core.logger import get_logger
from app.models.user import User, utcnow

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

logger = get_logger(__name__)


class OtpError(Exception):
    message = "OTP error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class OtpValidationError(OtpError):
    message = "Invalid request"


class OtpExpired(OtpError):
    message = "OTP expired or user not found. Please resend OTP."


class InvalidOtp(OtpError):
    message = "Invalid OTP"


def generate_otp() -> str:
    return str(1000 + secrets.randbelow(9000))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def _upsert(db: Session, email: str, ciphertext: str) -> User:
    now = utcnow()
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(
            email=email,
            otp=ciphertext,
            is_verified=False,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
    else:
        user.otp = ciphertext
        user.updated_at = now
        if not user.is_verified:
            user.is_verified = False
    db.commit()
    db.refresh(user)
    return user


def issue_otp(db: Session, cipher: OtpCipher, email: Optional[str]) -> Tuple[User, str]:
    """Store a freshly encrypted code for ``email`` and return it in plaintext.

    The email is validated before anything is written.
    """
    if not email:
        raise OtpValidationError("Email is required")
    if not is_valid_email(email):
        raise OtpValidationError("Not a valid email")

    otp = generate_otp()
    ciphertext = cipher.encrypt(otp)

    try:
        user = _upsert(db, email, ciphertext)
    except IntegrityError:
        # lost an insert race on the unique email; the row exists now
        db.rollback()
        user = _upsert(db, email, ciphertext)

    logger.info("otp_issued", email=email, user_id=user.id, is_verified=user.is_verified)
    return user, otp


def verify_otp(db: Session, cipher: OtpCipher, email: Optional[str], otp: Any) -> User:
    if not email or not otp:
        raise OtpValidationError("Email and OTP are required")

    user = db.query(User).filter(User.email == email).first()
    if not user or not user.otp:
        raise OtpExpired()

    stored = user.otp
    expected = cipher.decrypt(stored)
    if not isinstance(otp, str) or not hmac.compare_digest(expected.encode("utf-8"), otp.encode("utf-8")):
        logger.info("otp_rejected", email=email, user_id=user.id)
        raise InvalidOtp()

    # Only flip the row if it still holds the code we just checked.
    updated = (
        db.query(User)
        .filter(User.id == user.id, User.otp == stored)
        .update(
            {User.is_verified: True, User.otp: None, User.updated_at: utcnow()},
            synchronize_session=False,
        )
    )
    db.commit()
    if updated == 0:
        logger.warning("otp_verify_conflict", email=email, user_id=user.id)
        raise OtpExpired()

    db.refresh(user)
    logger.info("otp_verified", email=email, user_id=user.id)
    return user


def purge_unverified(db: Session, email: str) -> bool:
    """Delete the record for ``email`` if it exists and is still unverified.

    Safe to run any number of times for the same email.
    """
    deleted = (
        db.query(User)
        .filter(User.email == email, User.is_verified.is_(False))
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)
