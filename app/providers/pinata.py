"""Pinata IPFS image uploads."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..core.deployment.models import ImageBlob
from .base import ImageUploader

PINATA_UPLOAD_URL = "https://uploads.pinata.cloud/v3/files"
PINATA_API_URL = "https://api.pinata.cloud"
DEFAULT_GATEWAY = "https://gateway.pinata.cloud/ipfs"


def get_ipfs_url(uri: str, gateway: str = DEFAULT_GATEWAY) -> str:
    """Turn an ``ipfs://`` URI into a gateway URL; other URLs pass through."""
    if uri.startswith("ipfs://"):
        return f"{gateway.rstrip('/')}/{uri[len('ipfs://'):]}"
    return uri


class PinataUploader(ImageUploader):
    name = "pinata"
    timeout_s = 30

    def __init__(
        self,
        jwt: str,
        *,
        upload_url: str = PINATA_UPLOAD_URL,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._jwt = jwt
        self.upload_url = upload_url
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._jwt}"}

    async def health_check(self) -> Dict[str, Any]:
        if not self._jwt:
            return {"status": "unavailable", "reason": "PINATA_JWT not configured"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.get(
                    f"{PINATA_API_URL}/data/testAuthentication", headers=self._headers()
                )
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:  # noqa: BLE001
            return {"status": "error", "reason": str(e)}

    async def upload(self, image: ImageBlob) -> str:
        if not self._jwt:
            raise RuntimeError("PINATA_JWT is not configured")

        filename = image.filename or "token-image"
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            response = await client.post(
                self.upload_url,
                headers=self._headers(),
                files={"file": (filename, image.content, image.content_type)},
                data={"network": "public", "name": filename},
            )
            response.raise_for_status()
            data = response.json()

        cid = (data.get("data") or {}).get("cid") or data.get("cid") or data.get("IpfsHash")
        if not cid:
            raise RuntimeError("Pinata response did not include a CID")
        return f"ipfs://{cid}"


__all__ = ["PinataUploader", "get_ipfs_url"]
