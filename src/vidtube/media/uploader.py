"""Media host client — avatar and cover image uploads.

Learn: Images are not stored by this service. They are pushed to a
Cloudinary-compatible upload API and only the returned URL is kept on
the user row. Uploads are signed with the Cloudinary SDK's request signer; the
transfer itself goes through httpx so it stays async and mockable.

The host settings arrive in a MediaHostConfig at construction; nothing
is configured globally at import time.
"""

import time
from dataclasses import dataclass
from typing import Optional

import cloudinary.utils
import httpx
import structlog

from vidtube.errors import InternalFailure

logger = structlog.get_logger()


class MediaUploadError(InternalFailure):
    """The media host rejected the upload or could not be reached."""


@dataclass(frozen=True)
class MediaHostConfig:
    cloud_name: str
    api_key: str
    api_secret: str
    base_url: str = "https://api.cloudinary.com/v1_1"
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> "MediaHostConfig":
        return cls(
            cloud_name=settings.media_cloud_name,
            api_key=settings.media_api_key,
            api_secret=settings.media_api_secret,
            base_url=settings.media_base_url,
            timeout=settings.media_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    @property
    def upload_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.cloud_name}/auto/upload"


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str


class MediaUploader:
    def __init__(
        self,
        config: MediaHostConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.transport = transport

    async def upload(
        self,
        data: bytes,
        filename: str = "upload",
        folder: Optional[str] = None,
    ) -> UploadedMedia:
        """Upload raw bytes and return the hosted URL."""
        if not self.config.configured:
            raise MediaUploadError("Media host is not configured")

        params = {"timestamp": str(int(time.time()))}
        if folder:
            params["folder"] = folder
        form = {
            **params,
            "api_key": self.config.api_key,
            "signature": cloudinary.utils.api_sign_request(params, self.config.api_secret),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self.transport
            ) as client:
                r = await client.post(
                    self.config.upload_url,
                    data=form,
                    files={"file": (filename, data)},
                )
                r.raise_for_status()
                body = r.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "media.upload_rejected",
                status=e.response.status_code,
                filename=filename,
            )
            raise MediaUploadError("Error while uploading media") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("media.upload_failed", error=str(e), filename=filename)
            raise MediaUploadError("Error while uploading media") from e

        url = body.get("secure_url") or body.get("url")
        if not url:
            raise MediaUploadError("Media host returned no URL")

        logger.info("media.uploaded", public_id=body.get("public_id"), url=url)
        return UploadedMedia(url=url, public_id=body.get("public_id", ""))
