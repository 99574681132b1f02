"""
Content-address stores.

`put(data) -> address`, `get(address) -> data`. The local store keys blobs by
`0x` + SHA-256 of their bytes; the IPFS store returns the pinning service's
content identifier. Neither is a ledger.
"""
import json
import logging

import requests
from django.conf import settings

from utils import errors
from utils.fallback import FallbackOrchestrator, RetryPolicy, Tier
from utils.http_client import request_json, send_request

from .hashing import digest_bytes
from .models import ContentBlob

logger = logging.getLogger("rest_framework")


class ContentAddressStore(Tier):
    name = "store"

    def put(self, data: bytes) -> str:
        raise NotImplementedError

    def get(self, digest: str) -> bytes:
        raise NotImplementedError

    def exists(self, digest: str) -> bool:
        try:
            self.get(digest)
        except errors.NotFoundError:
            return False
        return True


class LocalContentStore(ContentAddressStore):
    name = "local"

    def put(self, data: bytes) -> str:
        digest = digest_bytes(data)
        ContentBlob.objects.get_or_create(digest=digest, defaults={"data": data, "size": len(data)})
        return digest

    def get(self, digest: str) -> bytes:
        try:
            blob = ContentBlob.objects.get(digest=digest)
        except ContentBlob.DoesNotExist:
            raise errors.NotFoundError(f"No content stored under {digest}.")
        return bytes(blob.data)

    def exists(self, digest: str) -> bool:
        return ContentBlob.objects.filter(digest=digest).exists()


class IpfsContentStore(ContentAddressStore):
    """Pins content through a Pinata-compatible API and reads it back through a gateway."""

    name = "ipfs"
    retry_policy = RetryPolicy()

    def __init__(self, api_url, gateway_url, api_key, session=None, timeout=10):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def put(self, data: bytes) -> str:
        digest = digest_bytes(data)
        try:
            content = json.loads(data)
        except ValueError:
            content = None

        if content is not None:
            payload = request_json(
                "POST",
                f"{self.api_url}/pinning/pinJSONToIPFS",
                session=self.session,
                token=self.api_key,
                timeout=self.timeout,
                json={"pinataContent": content, "pinataMetadata": {"name": digest}},
            )
        else:
            payload = request_json(
                "POST",
                f"{self.api_url}/pinning/pinFileToIPFS",
                session=self.session,
                token=self.api_key,
                timeout=self.timeout,
                files={"file": (digest, data)},
            )

        cid = payload.get("IpfsHash") if isinstance(payload, dict) else None
        if not cid:
            raise errors.UpstreamUnavailableError("IPFS pinning response had no content identifier.")
        return cid

    def get(self, digest: str) -> bytes:
        response = send_request(
            "GET",
            f"{self.gateway_url}/{digest}",
            session=self.session,
            timeout=self.timeout,
        )
        return response.content


class TieredContentStore(ContentAddressStore):
    """
    Remote store first, local store when the remote one is unreachable.

    Reads also move on when a tier does not know the address, since content
    written while the remote store was down only exists locally.
    """

    name = "tiered"

    def __init__(self, stores):
        self.stores = list(stores)
        self.orchestrator = FallbackOrchestrator(self.stores)
        self.reader = FallbackOrchestrator(
            self.stores,
            fall_through=(errors.UpstreamUnavailableError, errors.NotFoundError),
        )

    def put(self, data: bytes) -> str:
        return self.orchestrator.run("put", data=data).value

    def get(self, digest: str) -> bytes:
        return self.reader.run("get", digest=digest).value


def build_content_store():
    local = LocalContentStore()
    if not settings.IPFS_API_KEY:
        return local
    remote = IpfsContentStore(settings.IPFS_API_URL, settings.IPFS_GATEWAY, settings.IPFS_API_KEY)
    return TieredContentStore([remote, local])
