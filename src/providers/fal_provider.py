"""Fal.AI product image edit provider implementation.

This module provides an implementation of the ImageProvider protocol
for Fal.AI's image edit endpoints.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
from typing import Any

import aiohttp
import fal_client

from src.core.errors import classify_error, is_retryable
from src.core.image_utils import image_strip_headers
from src.core.providers import GeneratedImage, ImageEditRequest, ImageProvider

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class FalAIError(Exception):
    """Exception raised for Fal.AI API errors."""


class FalAIProvider:
    """Fal.AI image edit provider implementing ImageProvider protocol.

    The source image is uploaded to Fal.AI storage, a single edit job is
    submitted, and the result is polled. Submission is billable and is
    never retried; polling is idempotent and is retried on transient errors.

    Attributes:
        _api_key: The Fal.AI API key for authentication.
        _edit_model: The model used for edits.
        _max_retries: Maximum retry attempts while polling.
        _base_delay: Base delay for exponential backoff (seconds).
        _download_timeout: Timeout when fetching hosted result images.
    """

    DEFAULT_EDIT_MODEL = "fal-ai/nano-banana-pro/edit"

    def __init__(
        self,
        api_key: str | None,
        edit_model: str | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        download_timeout: float = 30.0,
    ) -> None:
        """Initialize the Fal.AI provider.

        fal_client reads credentials only from the FAL_KEY environment
        variable, so a provided key is written there. Multiple providers
        with different keys in one process are not supported.

        Args:
            api_key: The Fal.AI API key. If None, FAL_KEY must already be set.
            edit_model: The edit model. Defaults to DEFAULT_EDIT_MODEL.
            max_retries: Maximum number of polling retries.
            base_delay: Base delay in seconds for exponential backoff.
            download_timeout: Seconds allowed to download a hosted result.
        """
        self._api_key = api_key
        self._edit_model = edit_model or self.DEFAULT_EDIT_MODEL
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._download_timeout = download_timeout

        if api_key:
            os.environ["FAL_KEY"] = api_key

    async def _upload_image(self, image_data: bytes, content_type: str) -> str:
        """Upload the source image so the edit job can reference it.

        Returns:
            The URL of the uploaded image.

        Raises:
            FalAIError: If the upload fails.
        """
        extension = _EXTENSIONS.get(content_type, "png")

        def do_upload() -> str:
            return fal_client.upload(
                data=image_data,
                content_type=content_type,
                file_name=f"product.{extension}",
            )

        try:
            url = await asyncio.to_thread(do_upload)
            logger.debug("Product image uploaded to Fal.AI")
            return url
        except Exception as ex:
            logger.error("Failed to upload image to Fal.AI: %s", ex)
            raise FalAIError(f"Failed to upload image: {ex}") from ex

    async def _poll_with_retry(self, handler: Any) -> Any:
        """Poll for the job result, retrying transient failures.

        Args:
            handler: The request handle returned by fal_client.submit().

        Returns:
            The job result dict.

        Raises:
            FalAIError: If a permanent error occurs or retries run out.
        """
        for attempt in range(self._max_retries + 1):
            try:

                def get_result() -> Any:
                    for _event in handler.iter_events(with_logs=True):
                        logger.debug("Fal.AI queue update: still waiting...")
                    return handler.get()

                return await asyncio.to_thread(get_result)
            except Exception as ex:
                category = classify_error(ex)

                if not is_retryable(category):
                    logger.error("Fal.AI image edit failed with permanent error: %s", ex)
                    raise FalAIError(f"Image edit failed: {ex}") from ex

                if attempt >= self._max_retries:
                    logger.error(
                        "Fal.AI image edit polling failed after %d attempts: %s",
                        attempt + 1,
                        ex,
                    )
                    raise FalAIError(
                        f"Image edit failed after {attempt + 1} attempts: {ex}"
                    ) from ex

                delay = self._base_delay * (2.0**attempt)
                logger.warning(
                    "Fal.AI polling failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    delay,
                    ex,
                )
                await asyncio.sleep(delay)

        raise RuntimeError("Unexpected state in _poll_with_retry")

    async def _download_image_as_base64(self, url: str) -> str:
        """Download a hosted result image and return it base64-encoded.

        Raises:
            FalAIError: If the download fails.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self._download_timeout)
                ) as response:
                    response.raise_for_status()
                    data = await response.read()
        except aiohttp.ClientError as ex:
            logger.error("Failed to download edited image: %s", ex)
            raise FalAIError(f"Failed to download edited image: {ex}") from ex
        return base64.b64encode(data).decode("utf-8")

    async def edit(self, request: ImageEditRequest) -> list[GeneratedImage]:
        """Edit the product image according to the prompt.

        Args:
            request: The source image, instruction and aspect ratio.

        Returns:
            The edited images with inline base64 data.

        Raises:
            FalAIError: If decoding, upload, submission, polling or download fails.
        """
        try:
            image_bytes = base64.b64decode(request.image_data)
        except (binascii.Error, ValueError) as ex:
            raise FalAIError(f"Invalid base64 image data: {ex}") from ex

        image_url = await self._upload_image(image_bytes, request.content_type)

        arguments: dict[str, Any] = {
            "image_urls": [image_url],
            "prompt": request.prompt,
            "aspect_ratio": request.aspect_ratio,
            "output_format": "png",
            "num_images": 1,
            "sync_mode": True,
        }

        # Submit once: a resubmitted job is billed again
        try:

            def do_submit() -> Any:
                return fal_client.submit(self._edit_model, arguments=arguments)

            handler = await asyncio.to_thread(do_submit)
            logger.debug("Edit job submitted with request_id: %s", handler.request_id)
        except Exception as ex:
            logger.error("Failed to submit image edit job: %s", ex)
            raise FalAIError(f"Failed to submit image edit: {ex}") from ex

        result = await self._poll_with_retry(handler)

        images: list[GeneratedImage] = []
        has_nsfw_list = result.get("has_nsfw_concepts", [])
        for i, img_data in enumerate(result.get("images", [])):
            url = img_data.get("url")
            if not url:
                continue
            if url.startswith("data:"):
                data = image_strip_headers(url)
            else:
                data = await self._download_image_as_base64(url)

            images.append(
                GeneratedImage(
                    url=url,
                    data=data,
                    width=img_data.get("width") or 0,
                    height=img_data.get("height") or 0,
                    content_type=img_data.get("content_type", "image/png"),
                    has_nsfw_content=(
                        has_nsfw_list[i] if i < len(has_nsfw_list) else None
                    ),
                )
            )

        if not images:
            logger.warning("No images in Fal.AI edit response: %s", result)
        return images

    async def get_models(self) -> list[str]:
        """Get the model identifiers this provider uses."""
        return [self._edit_model]


# Protocol compliance verification
def _verify_protocol_compliance() -> None:
    """Static check that FalAIProvider implements ImageProvider."""
    _: ImageProvider = FalAIProvider(api_key="test")  # noqa: F841
