import json

import httpx
import pytest
from fastapi.testclient import TestClient

from migration_gateway.core.config import Settings
from migration_gateway.core.logging import configure_logging
from migration_gateway.core.signature import signature_header_for
from migration_gateway.main import create_app
from migration_gateway.schemas.legacy import LegacyUserRecord
from migration_gateway.services.legacy import StaticLegacyDirectory
from migration_gateway.services.migration import MigrationService
from migration_gateway.services.zitadel import ZitadelClient
from migration_gateway.tests.fakes import FakeZitadel
from migration_gateway.tests.payloads import ACTION_KEYS, HOSTED_LOGIN


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    configure_logging()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        zitadel_domain="zitadel.test",
        access_token="test-token",
        zitadel_org_id="org-1",
        listusers_signing_key=ACTION_KEYS["/action/list-users"],
        setsession_signing_key=ACTION_KEYS["/action/set-session"],
        setpassword_signing_key=ACTION_KEYS["/action/set-password"],
        legacy_database_url="sqlite+pysqlite:///:memory:",
    )


@pytest.fixture()
def legacy_user() -> LegacyUserRecord:
    return LegacyUserRecord(
        legacy_id="db-163840776835432346",
        login_name="legacy-user@gmail.com",
        username="legacy-user",
        given_name="Legacy",
        family_name="User",
        display_name="Legacy User",
        preferred_language="en",
        email="legacy-user@gmail.com",
        password="Password1!",
    )


@pytest.fixture()
def legacy_directory(legacy_user: LegacyUserRecord) -> StaticLegacyDirectory:
    return StaticLegacyDirectory([legacy_user])


@pytest.fixture()
def fake_zitadel() -> FakeZitadel:
    return FakeZitadel(access_token="test-token")


@pytest.fixture()
def zitadel(fake_zitadel: FakeZitadel, settings: Settings) -> ZitadelClient:
    http_client = httpx.Client(base_url=settings.zitadel_base_url(), transport=httpx.MockTransport(fake_zitadel.handler))
    client = ZitadelClient(
        settings.zitadel_base_url(),
        settings.access_token,
        settings.zitadel_org_id,
        http_client=http_client,
    )
    yield client
    client.close()


@pytest.fixture()
def service(zitadel: ZitadelClient, legacy_directory: StaticLegacyDirectory) -> MigrationService:
    return MigrationService(zitadel, legacy_directory, hosted_login_user_id=HOSTED_LOGIN)


@pytest.fixture()
def client(settings: Settings, zitadel: ZitadelClient, legacy_directory: StaticLegacyDirectory) -> TestClient:
    app = create_app(settings, zitadel=zitadel, legacy_directory=legacy_directory)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def post_action(client: TestClient):
    def _post(path: str, payload, signature: str = None, secret: str = None) -> httpx.Response:
        raw_body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        if signature is None:
            signature = signature_header_for(raw_body, secret or ACTION_KEYS[path])
        headers = {"Content-Type": "application/json", "zitadel-signature": signature}
        return client.post(path, content=raw_body, headers=headers)

    return _post
