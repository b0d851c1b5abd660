import base64
import binascii
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from migration_gateway.core.config import Settings
from migration_gateway.core.errors import UpstreamError
from migration_gateway.core.logging import get_module_logger
from migration_gateway.schemas.legacy import LegacyUserRecord
from migration_gateway.services.passwords import generate_random_password

logger = get_module_logger()

MIGRATION_METADATA_KEY = "migratedFromLegacy"
MIGRATION_IN_PROGRESS = "migrating"
MIGRATION_DONE = "true"


@dataclass(frozen=True)
class MigrationMetadata:
    migrated: bool
    has_any_metadata: bool


@dataclass(frozen=True)
class SessionUser:
    user_id: Optional[str]
    login_name: Optional[str]


def encode_metadata_value(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def decode_metadata_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


class ZitadelClient:
    """Synchronous client for the ZITADEL v2 user and session APIs.

    Every non-2xx answer raises ``UpstreamError``. Nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        organization_id: str,
        http_client: Optional[httpx.Client] = None,
        timeout_seconds: float = 5,
    ) -> None:
        self.organization_id = organization_id
        self._client = http_client or httpx.Client(base_url=base_url, timeout=timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZitadelClient":
        return cls(
            base_url=settings.zitadel_base_url(),
            access_token=settings.access_token,
            organization_id=settings.zitadel_org_id,
            timeout_seconds=settings.zitadel_timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ZitadelClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None) -> dict:
        try:
            response = self._client.request(method, path, json=json, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.error("zitadel_request_failed", method=method, path=path, error=str(exc))
            raise UpstreamError(path, body=str(exc)) from exc

        if not response.is_success:
            logger.warning("zitadel_request_rejected", method=method, path=path, status=response.status_code)
            raise UpstreamError(path, response.status_code, response.text)
        if not response.content:
            return {}
        return response.json()

    def create_user(self, record: LegacyUserRecord) -> str:
        body = {
            "organizationId": self.organization_id,
            "userId": record.legacy_id,
            "username": record.effective_username,
            "human": {
                "profile": {
                    "givenName": record.given_name,
                    "familyName": record.family_name,
                    "displayName": record.display_name,
                    "preferredLanguage": record.preferred_language or "en",
                },
                "email": {"email": record.email, "isVerified": True},
                "password": {"password": generate_random_password(), "changeRequired": False},
                "metadata": [
                    {"key": MIGRATION_METADATA_KEY, "value": encode_metadata_value(MIGRATION_IN_PROGRESS)},
                ],
            },
        }
        data = self._request("POST", "/v2/users/new", json=body)
        user_id = data.get("id")
        if not user_id:
            raise UpstreamError("/v2/users/new", body="response carried no user id")
        logger.info("zitadel_user_created", user_id=user_id, legacy_id=record.legacy_id)
        return user_id

    def set_password(self, user_id: str, password: str) -> None:
        body = {"human": {"password": {"password": {"password": password, "changeRequired": False}}}}
        self._request("PATCH", f"/v2/users/{user_id}", json=body)

    def get_migration_metadata(self, user_id: str) -> MigrationMetadata:
        body = {
            "filters": [
                {"keyFilter": {"key": MIGRATION_METADATA_KEY, "method": "TEXT_FILTER_METHOD_EQUALS"}},
            ]
        }
        data = self._request("POST", f"/v2/users/{user_id}/metadata/search", json=body)
        metadata = data.get("metadata") or []
        marker = next((item for item in metadata if item.get("key") == MIGRATION_METADATA_KEY), None)
        value = decode_metadata_value(marker.get("value")) if marker else None
        return MigrationMetadata(migrated=value == MIGRATION_DONE, has_any_metadata=len(metadata) > 0)

    def set_migrated_flag(self, user_id: str) -> None:
        body = {"metadata": [{"key": MIGRATION_METADATA_KEY, "value": encode_metadata_value(MIGRATION_DONE)}]}
        self._request("POST", f"/v2/users/{user_id}/metadata", json=body)
        logger.info("migration_marker_completed", user_id=user_id)

    def get_session(self, session_id: str, session_token: str) -> SessionUser:
        data = self._request("GET", f"/v2/sessions/{session_id}", params={"sessionToken": session_token})
        user = ((data.get("session") or {}).get("factors") or {}).get("user") or {}
        return SessionUser(user_id=user.get("id"), login_name=user.get("loginName"))

    def get_user(self, user_id: str) -> dict:
        path = f"/v2/users/{user_id}"
        user = self._request("GET", path).get("user")
        if not user:
            raise UpstreamError(path, body="response carried no user")
        return user
