"""Shared pytest fixtures for the proxy tests."""

import pytest
from sanic import Sanic

from settings import Settings

# Every test builds its own app under the same name
Sanic.test_mode = True

SAS_TOKEN = (
    "skoid=oid&sktid=tid&skt=2026-10-19T12%3A00%3A00Z&ske=2026-10-20T12%3A00%3A00Z"
    "&sks=b&skv=2021-08-06&sv=2021-08-06&spr=https&st=2026-10-19T12%3A00%3A00Z"
    "&se=2026-10-20T12%3A00%3A00Z&sip=0.0.0.0-255.255.255.255&sr=c&sp=r"
    "&sig=c2lnbmF0dXJl%3D"
)

ENVIRONMENT = {
    "STORAGE_ACCOUNT": "mapsacct",
    "BLOB_CONTAINER": "sourcemaps",
    "SSL_KEY": "/etc/ssl/private/proxy.key",
    "SSL_CERT": "/etc/ssl/certs/proxy.crt",
    "SSL_PASSPHRASE": "hunter2",
    "SSL_HOST": "local.teams.office.com",
}


@pytest.fixture
def environment() -> dict:
    return dict(ENVIRONMENT)


@pytest.fixture
def settings(environment: dict) -> Settings:
    return Settings.from_env(environment)


@pytest.fixture
def sas_token() -> str:
    return SAS_TOKEN
