"""
Test doubles and token builders shared by the test modules.
"""

import base64
import json
from typing import Dict, List, Optional

import httpx

from checker.models import VersionState


class InMemoryBlobStore:
    """Blob store fake keeping objects in a dict and recording writes."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects = dict(objects or {})
        self.writes: List[str] = []
        self.connected = False
        self.fail_reads = False
        self.fail_writes = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def exists(self, key: str) -> bool:
        return key in self.objects

    async def read(self, key: str) -> bytes:
        if self.fail_reads:
            raise ConnectionError("store unavailable")
        return self.objects[key]

    async def write(self, key: str, data: bytes) -> None:
        if self.fail_writes:
            raise ConnectionError("store unavailable")
        self.writes.append(key)
        self.objects[key] = data


class WebhookRecorder:
    """httpx transport handler capturing webhook posts."""

    def __init__(self, status_code: int = 204):
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    @property
    def contents(self) -> List[str]:
        return [json.loads(r.content)["content"] for r in self.requests]


def make_token(payload, pad: bool = False, urlsafe: bool = False) -> str:
    """Build ``header.payload.signature`` around a payload dict or string."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    encode = base64.urlsafe_b64encode if urlsafe else base64.b64encode
    segment = encode(text.encode("utf-8")).decode("ascii")
    if not pad:
        segment = segment.rstrip("=")
    return f"eyJhbGciOiJSUzI1NiJ9.{segment}.c2lnbmF0dXJl"


def make_metadata_payload(
    production_id: str = "P1",
    production_version: str = "v2",
    production_previous_version: str = "v1",
    staging_id: str = "S1",
    staging_version: str = "s1"
) -> dict:
    return {
        "environments": {
            "production": {"id": production_id, "version": production_version},
            "production-last": {"id": "P0", "version": production_previous_version},
            "staging": {"id": staging_id, "version": staging_version},
        }
    }


def state_bytes(last_production_id: str, last_staging_id: str) -> bytes:
    return VersionState(
        last_production_id=last_production_id,
        last_staging_id=last_staging_id
    ).to_json_bytes()


