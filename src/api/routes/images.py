"""Product image edit API route.

Each edit is gated by the session's daily quota: a slot is reserved before
the upstream call, committed only when an image comes back, and released
on any failure so that failed attempts never consume quota.
"""

import asyncio

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    get_daily_image_limit,
    get_image_provider,
    get_product_image_store,
    get_quota_ledger,
)
from src.api.errors import ServiceError
from src.api.schemas import ErrorResponse, ImageEditBody, ImageEditResponse, UsageResponse
from src.core.errors import wrap_upstream_error
from src.core.image_utils import (
    aspect_to_size,
    image_strip_headers,
    normalize_aspect,
    parse_data_url,
)
from src.core.logging import bind_request_context, clear_contextvars, get_logger
from src.core.prompts import build_product_edit_prompt
from src.core.providers import GeneratedImage, ImageEditRequest, ImageProvider
from src.core.quota import QuotaLedger
from src.core.sessions import ProductImageStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["images"])


def _image_b64(image: GeneratedImage) -> str | None:
    """Extract bare base64 data from a provider result."""
    if image.data:
        return image_strip_headers(image.data)
    if image.url and image.url.startswith("data:"):
        return image_strip_headers(image.url)
    return None


@router.post(
    "/image",
    response_model=ImageEditResponse,
    responses={
        200: {"description": "Image edited successfully"},
        400: {"model": ErrorResponse, "description": "Missing prompt or product image"},
        403: {"model": ErrorResponse, "description": "Daily limit reached"},
        500: {"model": ErrorResponse, "description": "Image edit failed"},
    },
)
async def edit_product_image(
    body: ImageEditBody,
    image_provider: ImageProvider = Depends(get_image_provider),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    product_images: ProductImageStore = Depends(get_product_image_store),
    daily_limit: int = Depends(get_daily_image_limit),
) -> ImageEditResponse:
    """Restage the session's product photo according to the prompt.

    The product itself is locked; only background, lighting and styling
    change. Limited to a fixed number of successful edits per UTC day.
    """
    session_id = body.session_id
    bind_request_context(session_id, endpoint="image")

    try:
        prompt = body.prompt.strip()
        if not prompt:
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "PROMPT_REQUIRED",
                "Describe the scene for your product.",
            )

        aspect = normalize_aspect(body.aspect)
        size = aspect_to_size(aspect)

        product = product_images.get(session_id)
        if product is None:
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "NO_PRODUCT_IMAGE",
                "Upload product image first.",
            )

        # Re-validate before reserving so a bad upload never holds quota
        if parse_data_url(product.data_url) is None:
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_IMAGE_DATA",
                "Stored product image is invalid. Re-upload it.",
            )

        decision = ledger.check_and_reserve(session_id, daily_limit)
        if not decision.admitted:
            raise ServiceError(
                status.HTTP_403_FORBIDDEN,
                "DAILY_LIMIT_REACHED",
                f"Your daily limit of {daily_limit} photos has been reached. "
                "It resets daily at 00:00 UTC.",
                usage=decision.usage.to_dict(),
            )

        # Every exit below that does not commit gives the slot back
        usage = None
        try:
            logger.info(
                "image_edit_started",
                aspect=aspect,
                prompt_length=len(prompt),
                remaining=decision.usage.remaining,
            )

            edit_request = ImageEditRequest(
                image_data=product.data_b64,
                prompt=build_product_edit_prompt(prompt, aspect),
                aspect_ratio=aspect,
                content_type=product.mime_type,
            )
            try:
                images = await image_provider.edit(edit_request)
            except asyncio.CancelledError:
                logger.warning("image_edit_cancelled")
                raise
            except Exception as ex:
                error = wrap_upstream_error(ex)
                logger.exception("image_edit_failed", category=error.category.name)
                raise ServiceError(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    "IMAGE_ERROR",
                    str(ex) or error.category.name,
                ) from ex

            b64 = _image_b64(images[0]) if images else None
            if not b64:
                logger.error("image_edit_empty", returned=len(images))
                raise ServiceError(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    "NO_IMAGE_RETURNED",
                    "No image returned from the model.",
                )

            usage = ledger.commit(decision)
        finally:
            if usage is None:
                ledger.release(decision)

        logger.info("image_edit_completed", used=usage.used, remaining=usage.remaining)

        return ImageEditResponse(
            b64=b64,
            aspect=aspect,
            size=size,
            usage=UsageResponse(**usage.to_dict()),
        )
    finally:
        clear_contextvars()
