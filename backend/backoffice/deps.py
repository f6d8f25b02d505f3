import logging
from typing import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from backoffice.core.database import SessionLocal
from backoffice.core.errors import (
    BackofficeError,
    InsufficientStock,
    ItemHasSales,
    LinkedRecordImmutable,
    NotFound,
    RecordInUse,
    StorageFailure,
    ValidationFailed,
)
from backoffice.models.user import AppUser

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationFailed, 422),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InsufficientStock, status.HTTP_409_CONFLICT),
    (ItemHasSales, status.HTTP_409_CONFLICT),
    (LinkedRecordImmutable, status.HTTP_409_CONFLICT),
    (RecordInUse, status.HTTP_409_CONFLICT),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_tenant_id(
    x_tenant_id: int = Header(..., alias="X-Tenant-Id"),
    db: Session = Depends(get_db),
) -> int:
    """Acting tenant, taken as-is from the caller. Authentication happens upstream."""
    if db.get(AppUser, x_tenant_id) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown tenant")
    return x_tenant_id


def http_error(exc: ValueError) -> HTTPException:
    """Translate a service failure into the HTTP error the caller sees."""
    if not isinstance(exc, BackofficeError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, StorageFailure):
        logger.error("Request failed on storage: %s", exc, exc_info=True)
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_detail())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_detail())
