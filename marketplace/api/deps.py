from fastapi import Header, HTTPException

from marketplace.services.errors import (
    ActiveOrderExists,
    EmptyCart,
    InsufficientStock,
    InvalidTransition,
    MarketplaceError,
    NotFound,
    NotOrderParticipant,
    OperationInProgress,
    StorageUnavailable,
    UnknownPromoCode,
    ValidationError,
)
from marketplace.session import SessionContext

STATUS_BY_ERROR = [
    (NotFound, 404),
    (NotOrderParticipant, 403),
    (ActiveOrderExists, 409),
    (InvalidTransition, 409),
    (OperationInProgress, 409),
    (InsufficientStock, 409),
    (StorageUnavailable, 503),
    (ValidationError, 400),
    (UnknownPromoCode, 400),
    (EmptyCart, 400),
]


def get_ctx(x_user_id: str = Header(None, alias="X-User-Id")) -> SessionContext:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Please log in first.")
    return SessionContext(x_user_id)


def to_http(e: MarketplaceError) -> HTTPException:
    status = next((code for cls, code in STATUS_BY_ERROR if isinstance(e, cls)), 400)
    return HTTPException(status_code=status, detail=e.user_message)
