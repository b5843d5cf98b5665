"""UniFi Network controller client built on httpx.

Supports both UniFi OS consoles (login at ``/api/auth/login``, network API
behind the ``/proxy/network`` prefix, CSRF token echoed on every request)
and legacy standalone controllers (login at ``/api/login``, no prefix).
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from voucher_service.exceptions import ControllerError
from voucher_service.schemas import UsageMode, VoucherRecord, VoucherTypeDefinition

logger = logging.getLogger(__name__)

UNIFI_OS_LOGIN_PATH = "/api/auth/login"
LEGACY_LOGIN_PATH = "/api/login"
UNIFI_OS_PREFIX = "/proxy/network"
CSRF_HEADER = "x-csrf-token"


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, "", 0):
        return None
    return int(value)


def normalize_voucher(raw: Dict[str, Any]) -> VoucherRecord:
    """Convert a ``stat/voucher`` entry into a VoucherRecord.

    The controller reports missing limits either by omitting the key or as
    zero; both become None.

    Raises:
        ControllerError: If the entry is not an object, lacks an id or a
            code, or carries values of the wrong type.
    """
    if not isinstance(raw, dict):
        raise ControllerError(f"Malformed voucher record from controller: {raw!r}")
    try:
        voucher_id = str(raw["_id"])
        code = str(raw["code"])
    except KeyError as e:
        raise ControllerError(f"Malformed voucher record from controller: missing {e}")

    create_time = raw.get("create_time")
    try:
        return VoucherRecord(
            id=voucher_id,
            code=code,
            duration_minutes=int(raw.get("duration") or 0),
            quota_mode=int(raw.get("quota") or 0),
            upload_limit_kbps=_optional_int(raw.get("qos_rate_max_up")),
            download_limit_kbps=_optional_int(raw.get("qos_rate_max_down")),
            quota_megabytes=_optional_int(raw.get("qos_usage_quota")),
            note=raw.get("note") or None,
            created_at=(
                datetime.fromtimestamp(create_time, tz=timezone.utc)
                if create_time is not None
                else None
            ),
            status=raw.get("status"),
        )
    except (TypeError, ValueError, OverflowError, OSError) as e:
        # pydantic's ValidationError is a ValueError
        raise ControllerError(f"Malformed voucher record {voucher_id} from controller: {e}")


class UnifiControllerClient:
    """Voucher operations against a single UniFi site.

    Args:
        base_url: Controller address, e.g. ``https://192.168.1.1:443``.
        username: Local controller account.
        password: Password of the account.
        site: Site id (``default`` on most installations).
        verify_ssl: Verify the controller certificate. Controllers ship with
                    self-signed certificates, so this is off by default.
        timeout: Per-request timeout in seconds.
        note: Note attached to every voucher created, shown in the
              controller UI.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        site: str = "default",
        verify_ssl: bool = False,
        timeout: float = 10.0,
        note: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._username = username
        self._password = password
        self._site = site
        self._note = note
        self._client = httpx.AsyncClient(
            base_url=base_url,
            verify=verify_ssl,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._prefix = ""
        self._csrf_token: Optional[str] = None
        self._logged_in = False
        self._login_lock = asyncio.Lock()

    async def _send(self, method: str, url: str, payload: Optional[dict] = None) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self._csrf_token:
            headers[CSRF_HEADER] = self._csrf_token
        try:
            response = await self._client.request(method, url, json=payload, headers=headers)
        except httpx.TimeoutException:
            raise ControllerError("Timed out waiting for the UniFi controller")
        except httpx.HTTPError as e:
            raise ControllerError(f"Unable to reach the UniFi controller: {e}")

        token = response.headers.get(CSRF_HEADER)
        if token:
            self._csrf_token = token
        return response

    async def login(self) -> None:
        """Authenticate, detecting UniFi OS or a legacy controller.

        Raises:
            ControllerError: On invalid credentials or unexpected responses.
        """
        async with self._login_lock:
            if self._logged_in:
                return

            credentials = {"username": self._username, "password": self._password}
            response = await self._send("POST", UNIFI_OS_LOGIN_PATH, credentials)
            prefix = UNIFI_OS_PREFIX
            if response.status_code == 404:
                logger.debug("UniFi OS login not available, using legacy controller login")
                response = await self._send("POST", LEGACY_LOGIN_PATH, credentials)
                prefix = ""

            if response.status_code in (400, 401, 403):
                raise ControllerError("Invalid UniFi controller credentials")
            if response.status_code >= 400:
                raise ControllerError(
                    f"UniFi controller login failed (HTTP {response.status_code})"
                )

            self._prefix = prefix
            self._logged_in = True
            logger.info("[UniFi] Login successful (%s)", "UniFi OS" if prefix else "legacy")

    async def _request(
        self, method: str, path: str, payload: Optional[dict] = None, retry: bool = True
    ) -> List[Dict[str, Any]]:
        """Call a site endpoint and return the ``data`` list of the response."""
        if not self._logged_in:
            await self.login()

        url = f"{self._prefix}/api/s/{self._site}/{path}"
        response = await self._send(method, url, payload)

        if response.status_code == 401 and retry:
            logger.info("[UniFi] Session expired, logging in again")
            self._logged_in = False
            self._csrf_token = None
            return await self._request(method, path, payload, retry=False)

        try:
            body = response.json()
        except ValueError:
            raise ControllerError(
                f"Unexpected response from the UniFi controller (HTTP {response.status_code})"
            )

        if not isinstance(body, dict):
            raise ControllerError(
                f"Unexpected response from the UniFi controller (HTTP {response.status_code})"
            )

        meta = body.get("meta")
        if not isinstance(meta, dict):
            meta = {}
        if response.status_code >= 400 or meta.get("rc") != "ok":
            raise ControllerError(
                meta.get("msg") or f"UniFi controller returned HTTP {response.status_code}"
            )

        data = body.get("data") or []
        if not isinstance(data, list):
            raise ControllerError("Unexpected data in UniFi controller response")
        return data

    async def create(self, definition: VoucherTypeDefinition, amount: int = 1) -> List[str]:
        """Create vouchers and return their codes in controller order."""
        payload: Dict[str, Any] = {
            "cmd": "create-voucher",
            "expire": definition.expiration_minutes,
            "n": amount,
            "quota": 1 if definition.usage is UsageMode.SINGLE_USE else 0,
        }
        if self._note:
            payload["note"] = self._note
        if definition.upload_limit_kbps is not None:
            payload["up"] = definition.upload_limit_kbps
        if definition.download_limit_kbps is not None:
            payload["down"] = definition.download_limit_kbps
        if definition.quota_megabytes is not None:
            payload["bytes"] = definition.quota_megabytes

        data = await self._request("POST", "cmd/hotspot", payload)
        if not data or not isinstance(data[0], dict) or "create_time" not in data[0]:
            raise ControllerError("UniFi controller did not confirm voucher creation")

        created = await self._request(
            "POST", "stat/voucher", {"create_time": data[0]["create_time"]}
        )
        codes = [normalize_voucher(raw).code for raw in created]
        if not codes:
            raise ControllerError("UniFi controller returned no voucher codes")
        logger.info("[UniFi] Created %d voucher(s)", len(codes))
        return codes

    async def list(self) -> List[VoucherRecord]:
        data = await self._request("GET", "stat/voucher")
        return [normalize_voucher(raw) for raw in data]

    async def remove(self, voucher_id: str) -> bool:
        await self._request("POST", "cmd/hotspot", {"cmd": "delete-voucher", "_id": voucher_id})
        logger.info("[UniFi] Removed voucher %s", voucher_id)
        return True

    async def close(self) -> None:
        await self._client.aclose()
