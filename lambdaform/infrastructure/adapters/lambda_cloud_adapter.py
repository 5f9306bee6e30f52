"""
Lambda Cloud API Adapter

Architectural Intent:
- Implements CloudAPIPort against the Lambda Cloud REST API (v1)
- Uses stdlib urllib for the HTTP layer (no external dependencies)
- Blocking requests run in the default executor so the event loop stays free
  while capacity polling or other resources are reconciled concurrently

Design Decisions:
- One request per call, no internal retry; launch and terminate in particular
  must never be replayed blindly
- Success bodies are unwrapped from the {"data": ...} envelope; a non-200
  status, a network failure or a missing envelope raises TransportError with
  the provider's error message attached
- Bearer credentials are sent per request and never logged
"""

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional

from lambdaform.domain.errors import TransportError
from lambdaform.domain.value_objects.filesystem import Filesystem
from lambdaform.domain.value_objects.instance_spec import LaunchRequest
from lambdaform.domain.value_objects.instance_type import InstanceTypeOffer
from lambdaform.domain.value_objects.observed_instance import ObservedInstance
from lambdaform.domain.value_objects.ssh_key import SSHKey

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://cloud.lambdalabs.com/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "lambdaform/0.1"


class LambdaCloudAdapter:
    """HTTP gateway to the Lambda Cloud API."""

    def __init__(
        self,
        api_key: str,
        host: str = DEFAULT_HOST,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._host = host.rstrip("/")
        self._timeout = timeout_seconds

    @property
    def host(self) -> str:
        return self._host

    async def list_instance_types(self) -> dict[str, InstanceTypeOffer]:
        data = await self._request("GET", "/instance-types", operation="list_instance_types")
        return {name: InstanceTypeOffer.from_dict(entry) for name, entry in data.items()}

    async def launch_instance(self, request: LaunchRequest) -> list[str]:
        data = await self._request(
            "POST",
            "/instance-operations/launch",
            body=request.to_payload(),
            operation="create",
        )
        try:
            return [str(instance_id) for instance_id in data.get("instance_ids") or []]
        except (AttributeError, TypeError) as e:
            raise TransportError(
                "launch returned a malformed body", operation="create", body=str(data)
            ) from e

    async def list_instances(self) -> list[ObservedInstance]:
        data = await self._request("GET", "/instances", operation="read")
        return [ObservedInstance.from_dict(entry) for entry in data]

    async def terminate_instances(self, instance_ids: list[str]) -> list[str]:
        data = await self._request(
            "POST",
            "/instance-operations/terminate",
            body={"instance_ids": list(instance_ids)},
            operation="delete",
        )
        try:
            return [entry["id"] for entry in data.get("terminated_instances") or []]
        except (AttributeError, KeyError, TypeError) as e:
            raise TransportError(
                "terminate returned a malformed body", operation="delete", body=str(data)
            ) from e

    async def list_ssh_keys(self) -> list[SSHKey]:
        data = await self._request("GET", "/ssh-keys", operation="list_ssh_keys")
        return [SSHKey.from_dict(entry) for entry in data]

    async def add_ssh_key(self, name: str, public_key: str) -> SSHKey:
        data = await self._request(
            "POST",
            "/ssh-keys",
            body={"name": name, "public_key": public_key},
            operation="add_ssh_key",
        )
        return SSHKey.from_dict(data)

    async def delete_ssh_key(self, key_id: str) -> None:
        await self._request(
            "DELETE",
            f"/ssh-keys/{urllib.parse.quote(key_id, safe='')}",
            operation="delete_ssh_key",
            expect_data=False,
        )

    async def list_filesystems(self) -> list[Filesystem]:
        data = await self._request("GET", "/file-systems", operation="list_filesystems")
        return [Filesystem.from_dict(entry) for entry in data]

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        operation: str = "",
        expect_data: bool = True,
    ) -> Any:
        def _send() -> Any:
            return self._send(method, path, body, operation, expect_data)

        return await asyncio.get_running_loop().run_in_executor(None, _send)

    def _send(
        self,
        method: str,
        path: str,
        body: Optional[dict],
        operation: str,
        expect_data: bool,
    ) -> Any:
        url = f"{self._host}{path}"
        payload = json.dumps(body).encode() if body is not None else None
        req = urllib.request.Request(url, data=payload, method=method)
        req.add_header("Authorization", f"Bearer {self._api_key}")
        req.add_header("Accept", "application/json")
        req.add_header("User-Agent", USER_AGENT)
        if payload is not None:
            req.add_header("Content-Type", "application/json")

        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                status = response.status
                raw = response.read().decode()
        except urllib.error.HTTPError as e:
            raw = e.read().decode(errors="replace") if e.fp else ""
            raise TransportError(
                f"{method} {path} failed with status {e.code}",
                operation=operation,
                status_code=e.code,
                body=_error_message(raw) or e.reason,
            ) from e
        except urllib.error.URLError as e:
            raise TransportError(
                f"{method} {path} failed: {e.reason}",
                operation=operation,
            ) from e

        if status != 200:
            raise TransportError(
                f"{method} {path} returned status {status}",
                operation=operation,
                status_code=status,
                body=_error_message(raw) or raw,
            )
        if not expect_data:
            return None

        try:
            envelope = json.loads(raw) if raw else {}
        except json.JSONDecodeError as e:
            raise TransportError(
                f"{method} {path} returned malformed JSON",
                operation=operation,
                status_code=status,
                body=raw,
            ) from e
        if not isinstance(envelope, dict) or envelope.get("data") is None:
            raise TransportError(
                f"{method} {path} returned an empty response",
                operation=operation,
                status_code=status,
                body=raw,
            )
        return envelope["data"]


def _error_message(raw: str) -> str:
    """Render the provider's {"error": {...}} body, or "" if there is none."""
    try:
        error = json.loads(raw).get("error") or {}
    except (ValueError, AttributeError):
        return ""
    if not isinstance(error, dict):
        return ""
    parts = [error.get("code"), error.get("message"), error.get("suggestion")]
    return ": ".join(p for p in parts if p)
