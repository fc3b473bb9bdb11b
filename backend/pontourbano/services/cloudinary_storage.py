"""
Ponto Urbano Backend — Cloudinary Blob Storage
================================================

What:  Forwards photos to Cloudinary's Upload API and stores the returned URL.
Why:   Free-tier hosts (Render, Railway) have ephemeral disks; a CDN keeps photos
       across deploys and serves them faster than we can.
How:   Signed REST calls through one shared httpx.AsyncClient:
           POST {api}/v1_1/<cloud>/image/upload   (multipart, returns secure_url)
           POST {api}/v1_1/<cloud>/image/destroy  (by public_id)

Request signing:
    Cloudinary authenticates a call with
        signature = sha1("k1=v1&k2=v2..." + api_secret)
    over every parameter except file, api_key, resource_type and cloud_name,
    sorted by key. No SDK is needed for the two endpoints used here.

Folders & transformations:
    Every upload goes to "<CLOUDINARY_FOLDER>/<folder>" and carries an incoming
    transformation "c_limit,w_N,h_N", so Cloudinary never stores anything larger
    than the configured dimension, whatever the client sent.

Timeouts:
    The client is built with UPLOAD_TIMEOUT. A timeout or connection error is an
    UploadError (500), reported once, never retried.
"""

import hashlib
import logging
import time
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from pontourbano.config import Settings
from pontourbano.exceptions import UploadError
from pontourbano.services.storage_base import BlobStorage

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com"
DELIVERY_HOST = "res.cloudinary.com"

MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Cloudinary API signature for a parameter dict."""
    to_sign = "&".join(
        f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")
    )
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def public_id_from_url(url: str) -> Optional[str]:
    """
    Derive the public_id Cloudinary needs for destroy from a delivery URL.

    Example:
        https://res.cloudinary.com/demo/image/upload/c_limit,w_1280/v1712345678/ponto-urbano/problemas/ab12.jpg
        → "ponto-urbano/problemas/ab12"

    Everything up to and including the version segment (v<digits>) is dropped.
    Unversioned URLs only lose their leading transformation segments
    (the ones containing ",").
    """
    parsed = urlparse(url)
    marker = "/upload/"
    if parsed.netloc != DELIVERY_HOST or marker not in parsed.path:
        return None

    segments = [s for s in parsed.path.split(marker, 1)[1].split("/") if s]
    version_index = next(
        (i for i, s in enumerate(segments) if s[0] == "v" and s[1:].isdigit()),
        None,
    )
    if version_index is not None:
        segments = segments[version_index + 1:]
    else:
        while len(segments) > 1 and "," in segments[0]:
            segments = segments[1:]

    if not segments:
        return None
    last = segments[-1]
    if "." in last:
        segments[-1] = last.rsplit(".", 1)[0]
    return "/".join(segments)


class CloudinaryBlobStorage(BlobStorage):
    """Blob storage on Cloudinary."""

    backend_name = "cloudinary"

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            settings: Cloudinary credentials, base folder and timeout.
            client:   Pre-built client (tests pass one with httpx.MockTransport).
                      If omitted, one is created and closed by close().
        """
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.base_folder = settings.cloudinary_folder.strip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.upload_timeout)
        self.api_url = f"{API_BASE_URL}/v1_1/{self.cloud_name}/image"

    def owns(self, reference: str) -> bool:
        parsed = urlparse(reference)
        return parsed.netloc == DELIVERY_HOST and parsed.path.startswith(f"/{self.cloud_name}/")

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {k: v for k, v in params.items() if v not in (None, "")}
        params["timestamp"] = int(time.time())
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def _post(self, endpoint: str, data: Dict[str, Any], files=None) -> Dict[str, Any]:
        """POST to the API; any transport or HTTP failure becomes UploadError(500)."""
        url = f"{self.api_url}/{endpoint}"
        try:
            response = await self.client.post(
                url,
                data={k: str(v) for k, v in data.items()},
                files=files,
            )
        except httpx.HTTPError as e:
            logger.error("Cloudinary %s request failed: %s", endpoint, str(e))
            raise UploadError(
                message="Serviço de imagens indisponível. Tente novamente.",
                status_code=500,
                context={"endpoint": endpoint, "error": type(e).__name__},
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            detail = (body.get("error") or {}).get("message", response.text[:200])
            logger.error(
                "Cloudinary %s returned %d: %s", endpoint, response.status_code, detail,
            )
            raise UploadError(
                message="Falha ao enviar a imagem para o serviço de hospedagem.",
                status_code=500,
                context={"endpoint": endpoint, "status": response.status_code, "detail": detail},
            )
        return body

    async def save(
        self,
        content: bytes,
        extension: str,
        folder: str,
        max_dimension: Optional[int] = None,
    ) -> str:
        public_id = uuid.uuid4().hex
        params = self._signed({
            "folder": f"{self.base_folder}/{folder}" if self.base_folder else folder,
            "public_id": public_id,
            "transformation": (
                f"c_limit,w_{max_dimension},h_{max_dimension}" if max_dimension else None
            ),
        })
        files = {
            "file": (
                f"{public_id}{extension}",
                content,
                MIME_BY_EXTENSION.get(extension, "application/octet-stream"),
            )
        }

        body = await self._post("upload", params, files=files)
        url = body.get("secure_url") or body.get("url")
        if not url:
            raise UploadError(
                message="Falha ao enviar a imagem para o serviço de hospedagem.",
                status_code=500,
                context={"endpoint": "upload", "detail": "response without secure_url"},
            )

        logger.info("Uploaded %d bytes to Cloudinary as %s", len(content), body.get("public_id"))
        return url

    async def delete(self, reference: str) -> None:
        public_id = public_id_from_url(reference)
        if not public_id:
            raise UploadError(
                message="Referência de imagem inválida.",
                status_code=500,
                context={"reference": reference},
            )

        body = await self._post("destroy", self._signed({"public_id": public_id}))
        result = body.get("result")
        if result == "not found":
            logger.debug("Cloudinary delete: %s already gone", public_id)
        elif result != "ok":
            raise UploadError(
                message="Falha ao remover a imagem do serviço de hospedagem.",
                status_code=500,
                context={"public_id": public_id, "result": result},
            )
        else:
            logger.info("Removed Cloudinary image %s", public_id)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
