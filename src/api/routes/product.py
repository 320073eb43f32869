"""Product upload and usage API routes.

Uploading a new product image replaces the session's previous one but never
resets its daily usage: quota follows the session and the UTC day, not the
image being edited.
"""

import asyncio

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    get_daily_image_limit,
    get_product_image_store,
    get_quota_ledger,
)
from src.api.errors import ServiceError
from src.api.schemas import (
    DEFAULT_SESSION_ID,
    MAX_IMAGE_DATA_URL_LENGTH,
    ErrorResponse,
    ProductUploadRequest,
    ProductUploadResponse,
    UsageResponse,
)
from src.core.image_utils import ImageTooLargeError, parse_data_url, verify_image
from src.core.logging import bind_request_context, clear_contextvars, get_logger
from src.core.quota import QuotaLedger
from src.core.sessions import ProductImageStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["product"])


@router.post(
    "/product",
    response_model=ProductUploadResponse,
    responses={
        200: {"description": "Product image stored"},
        400: {"model": ErrorResponse, "description": "Invalid image"},
        413: {"model": ErrorResponse, "description": "Image too large"},
    },
)
async def upload_product(
    body: ProductUploadRequest,
    product_images: ProductImageStore = Depends(get_product_image_store),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    daily_limit: int = Depends(get_daily_image_limit),
) -> ProductUploadResponse:
    """Store the session's reference product image."""
    session_id = body.session_id
    bind_request_context(session_id, endpoint="product")

    try:
        data_url = body.image_data_url.strip()
        if len(data_url) > MAX_IMAGE_DATA_URL_LENGTH:
            raise ServiceError(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                "IMAGE_TOO_LARGE",
                "Image must be under 6 MB.",
            )

        image = parse_data_url(data_url) if data_url.startswith("data:image/") else None
        if image is None:
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_IMAGE",
                "Send valid base64 image.",
            )

        try:
            width, height = await asyncio.to_thread(verify_image, image.data_b64)
        except ImageTooLargeError as ex:
            logger.info("product_upload_rejected", error=str(ex))
            raise ServiceError(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                "IMAGE_TOO_LARGE",
                "Image dimensions are too large.",
            ) from ex
        except ValueError as ex:
            logger.info("product_upload_rejected", error=str(ex))
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_IMAGE",
                "Send valid base64 image.",
            ) from ex

        product_images.put(session_id, image)
        usage = ledger.peek(session_id, daily_limit)

        logger.info(
            "product_uploaded",
            mime_type=image.mime_type,
            width=width,
            height=height,
            used=usage.used,
        )
        return ProductUploadResponse(ok=True, usage=UsageResponse(**usage.to_dict()))
    finally:
        clear_contextvars()


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    session_id: str = Query(DEFAULT_SESSION_ID, alias="sessionId"),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    daily_limit: int = Depends(get_daily_image_limit),
) -> UsageResponse:
    """Report the session's image quota for today.

    An empty ``sessionId`` falls back to the default session, as request
    bodies do.
    """
    session_id = session_id or DEFAULT_SESSION_ID
    return UsageResponse(**ledger.peek(session_id, daily_limit).to_dict())
