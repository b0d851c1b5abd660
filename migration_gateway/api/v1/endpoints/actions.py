import json
import uuid
from typing import Any, Optional, TypeVar

import structlog
from fastapi import APIRouter, Depends, Header
from pydantic import ValidationError as PayloadValidationError

from migration_gateway.api.deps import get_migration_service, signed_body
from migration_gateway.core.errors import ValidationError
from migration_gateway.schemas.actions import ActionEnvelope, ListUsersAction, SetPasswordAction, SetSessionAction
from migration_gateway.services.migration import MigrationService

router = APIRouter(prefix="/action", tags=["actions"])

ActionT = TypeVar("ActionT", bound=ActionEnvelope)


def parse_action(raw_body: bytes, model: type[ActionT]) -> ActionT:
    try:
        payload = json.loads(raw_body)
    except ValueError as err:
        raise ValidationError("Invalid JSON") from err
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON")

    try:
        return model.model_validate(payload)
    except PayloadValidationError as err:
        raise ValidationError("Invalid action payload") from err


def _request_context(action: str, request_id: Optional[str]) -> dict[str, str]:
    return {"action": action, "request_id": request_id or uuid.uuid4().hex}


@router.post("/list-users")
def list_users(
    raw_body: bytes = Depends(signed_body("listusers_signing_key")),
    service: MigrationService = Depends(get_migration_service),
    x_request_id: Optional[str] = Header(default=None),
) -> dict[str, Any]:
    with structlog.contextvars.bound_contextvars(**_request_context("list_users", x_request_id)):
        return service.lookup_and_provision(parse_action(raw_body, ListUsersAction))


@router.post("/set-session")
def set_session(
    raw_body: bytes = Depends(signed_body("setsession_signing_key")),
    service: MigrationService = Depends(get_migration_service),
    x_request_id: Optional[str] = Header(default=None),
) -> dict[str, Any]:
    with structlog.contextvars.bound_contextvars(**_request_context("set_session", x_request_id)):
        return service.check_password(parse_action(raw_body, SetSessionAction))


@router.post("/set-password")
def set_password(
    raw_body: bytes = Depends(signed_body("setpassword_signing_key")),
    service: MigrationService = Depends(get_migration_service),
    x_request_id: Optional[str] = Header(default=None),
) -> dict[str, Any]:
    with structlog.contextvars.bound_contextvars(**_request_context("set_password", x_request_id)):
        return service.finalize_password_reset(parse_action(raw_body, SetPasswordAction))
