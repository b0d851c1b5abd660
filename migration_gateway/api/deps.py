from collections.abc import Awaitable, Callable

from fastapi import Request

from migration_gateway.core.config import Settings
from migration_gateway.core.errors import AuthenticationError
from migration_gateway.core.logging import get_module_logger
from migration_gateway.core.signature import SIGNATURE_HEADER, require_valid_signature
from migration_gateway.services.migration import MigrationService

logger = get_module_logger()


def get_migration_service(request: Request) -> MigrationService:
    state = request.app.state
    return MigrationService(
        zitadel=state.zitadel,
        legacy_directory=state.legacy_directory,
        hosted_login_user_id=state.settings.hosted_login_user_id,
    )


def signed_body(secret_setting: str) -> Callable[[Request], Awaitable[bytes]]:
    """Dependency returning the raw body once its signature checks out.

    Each action endpoint is signed with its own key, named by ``secret_setting``.
    """

    async def verifier(request: Request) -> bytes:
        settings: Settings = request.app.state.settings
        raw_body = await request.body()
        try:
            require_valid_signature(
                raw_body,
                request.headers.get(SIGNATURE_HEADER),
                getattr(settings, secret_setting),
                tolerance_seconds=settings.signature_tolerance_seconds,
            )
        except AuthenticationError as exc:
            logger.warning("action_signature_rejected", path=request.url.path, reason=exc.message)
            raise
        return raw_body

    return verifier
