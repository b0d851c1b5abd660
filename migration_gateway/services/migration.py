"""Three-phase lazy migration driven by intercepted identity platform calls.

A legacy user moves through the ``migratedFromLegacy`` marker states
absent -> "migrating" -> "true", and only forward:

* list users (phase A) provisions the user with a throwaway password and the
  "migrating" marker the first time the hosted login looks them up;
* set session (phase B) checks the password against the legacy store, installs
  it and marks the user migrated;
* set password (phase C) marks the user migrated after a password reset.

Phases A and B fall back to the untouched platform response on any failure so
the native login flow keeps working. Phase C reports failures instead, since
skipping it would leave the marker stuck at "migrating".
"""

import hmac
from datetime import datetime, timezone
from typing import Any

from migration_gateway.core.errors import CredentialMismatch, FinalizationError, UpstreamError, ValidationError
from migration_gateway.core.logging import get_module_logger
from migration_gateway.schemas.actions import ListUsersAction, SetPasswordAction, SetSessionAction
from migration_gateway.schemas.legacy import LegacyUserRecord
from migration_gateway.services.legacy import LegacyDirectory
from migration_gateway.services.zitadel import ZitadelClient

logger = get_module_logger()


def _total_result(response: dict[str, Any]) -> int:
    details = response.get("details") or {}
    try:
        return int(details.get("totalResult") or 0)
    except (TypeError, ValueError):
        return 0


def _passwords_match(supplied: str, stored: str) -> bool:
    return hmac.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))


def build_list_users_response(user: dict[str, Any], login_name: str) -> dict[str, Any]:
    return {
        "details": {
            "totalResult": "1",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "result": [
            {
                "userId": user.get("userId"),
                "details": user.get("details"),
                "state": user.get("state") or "USER_STATE_ACTIVE",
                "username": user.get("username"),
                "loginNames": user.get("loginNames") or [login_name],
                "preferredLoginName": user.get("preferredLoginName") or login_name,
                "human": user.get("human"),
            }
        ],
    }


class MigrationService:
    def __init__(
        self,
        zitadel: ZitadelClient,
        legacy_directory: LegacyDirectory,
        hosted_login_user_id: str = "zitadel-cloud-login",
    ) -> None:
        self.zitadel = zitadel
        self.legacy_directory = legacy_directory
        self.hosted_login_user_id = hosted_login_user_id

    def lookup_and_provision(self, action: ListUsersAction) -> dict[str, Any]:
        response = action.original_response()

        if action.user_id != self.hosted_login_user_id:
            logger.info("list_users_skipped", reason="not_hosted_login", actor=action.user_id)
            return response

        login_name = action.request.first_login_name()
        try:
            if _total_result(response) > 0 or response.get("result"):
                logger.info("list_users_skipped", reason="user_already_known")
                return response
            record = self.legacy_directory.find_by_login_name(login_name) if login_name else None
            if record is None:
                logger.info("list_users_skipped", reason="no_legacy_user", login_name=login_name)
                return response
            user = self._provision(record)
        except Exception as exc:
            logger.error("list_users_provisioning_failed", login_name=login_name, error=str(exc))
            return response

        logger.info("list_users_provisioned", login_name=login_name, user_id=user.get("userId"))
        return build_list_users_response(user, login_name)

    def _provision(self, record: LegacyUserRecord) -> dict[str, Any]:
        try:
            user_id = self.zitadel.create_user(record)
        except UpstreamError as exc:
            if not exc.is_conflict:
                raise
            # a concurrent first login already created the user under its legacy id
            logger.info("legacy_user_already_provisioned", legacy_id=record.legacy_id)
            user_id = record.legacy_id
        return self.zitadel.get_user(user_id)

    def check_password(self, action: SetSessionAction) -> dict[str, Any]:
        response = action.original_response()
        password = action.request.supplied_password()
        if not password:
            return response

        try:
            return self._check_password(action, password)
        except CredentialMismatch:
            raise
        except Exception as exc:
            logger.error("set_session_check_failed", session_id=action.request.session_id, error=str(exc))
            return response

    def _check_password(self, action: SetSessionAction, password: str) -> dict[str, Any]:
        response = action.original_response()
        session_id = action.request.session_id
        if not session_id:
            logger.warning("set_session_skipped", reason="missing_session_id")
            return response

        session_user = self.zitadel.get_session(session_id, action.request.session_token or "")
        user_id = session_user.user_id
        if not user_id:
            logger.warning("set_session_skipped", reason="session_without_user", session_id=session_id)
            return response

        metadata = self.zitadel.get_migration_metadata(user_id)
        if metadata.migrated:
            logger.info("set_session_skipped", reason="already_migrated", user_id=user_id)
            return response
        if not metadata.has_any_metadata:
            logger.info("set_session_skipped", reason="no_migration_metadata", user_id=user_id)
            return response

        record = self.legacy_directory.find_by_login_name(session_user.login_name) if session_user.login_name else None
        if record is None:
            logger.warning("set_session_skipped", reason="no_legacy_user", user_id=user_id)
            return response

        if not _passwords_match(password, record.password):
            logger.info("set_session_password_mismatch", user_id=user_id)
            raise CredentialMismatch()

        self.zitadel.set_password(user_id, password)
        self.zitadel.set_migrated_flag(user_id)
        logger.info("set_session_user_migrated", user_id=user_id)
        return response

    def finalize_password_reset(self, action: SetPasswordAction) -> dict[str, Any]:
        response = action.original_response()
        user_id = action.request.user_id
        if not user_id:
            logger.error("set_password_missing_user_id")
            raise ValidationError("Missing userId in request")

        try:
            metadata = self.zitadel.get_migration_metadata(user_id)
            if metadata.migrated:
                logger.info("set_password_skipped", reason="already_migrated", user_id=user_id)
                return response
            if not metadata.has_any_metadata:
                logger.info("set_password_skipped", reason="no_migration_metadata", user_id=user_id)
                return response

            self.zitadel.set_migrated_flag(user_id)
        except Exception as exc:
            logger.error("set_password_finalization_failed", user_id=user_id, error=str(exc))
            raise FinalizationError() from exc

        logger.info("set_password_user_migrated", user_id=user_id)
        return response
