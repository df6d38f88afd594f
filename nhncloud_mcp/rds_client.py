"""
NHN Cloud API client
====================
Minimal REST client for the NHN Cloud services this server exposes.

NHNCloudClient is built from a ClientConfig snapshot of the credential
store, one client per tool call. Services are reached through accessors
(client.mysql()) that check the credentials and app key they need.

RDS for MySQL (API v3.0) authenticates every request with three headers:
  X-TC-APP-KEY               service app key
  X-TC-AUTHENTICATION-ID     User Access Key ID
  X-TC-AUTHENTICATION-SECRET Secret Access Key
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import requests
from requests.utils import quote

from nhncloud_mcp.config import API_TIMEOUT, RDS_MYSQL_ENDPOINT

logger = logging.getLogger(__name__)

SERVICE_RDS_MYSQL = "rds-mysql"
SERVICE_RDS_MARIADB = "rds-mariadb"
SERVICE_RDS_POSTGRESQL = "rds-postgresql"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class NHNCloudError(Exception):
    """Base class for NHN Cloud client errors."""


class MissingCredentials(NHNCloudError):
    pass


class ServiceNotConfigured(NHNCloudError):
    def __init__(self, service: str):
        self.service = service
        super().__init__(f"App key for '{service}' is not configured")


class RemoteCallFailure(NHNCloudError):
    """A call to the NHN Cloud API failed. Carries the operation that failed."""

    def __init__(self, operation: str, message: str, status_code: int | None = None):
        self.operation = operation
        self.message = message
        self.status_code = status_code
        detail = f"{operation}: {message}"
        if status_code is not None:
            detail += f" (HTTP {status_code})"
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StaticCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)

    def is_complete(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


@dataclass(frozen=True)
class IdentityCredentials:
    username: str
    password: str = field(repr=False)
    tenant_id: str = ""


@dataclass(frozen=True)
class ClientConfig:
    """
    Everything NHNCloudClient needs, captured from one credential store snapshot.

    Attributes:
        region: Region code, e.g. "kr1"
        credentials: User Access Key pair
        identity: Username/API password/tenant, or None unless all three are set
        app_keys: Service name → app key. Empty string means not configured.
    """
    region: str
    credentials: StaticCredentials
    identity: IdentityCredentials | None = None
    app_keys: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    def app_key(self, service: str) -> str:
        return self.app_keys.get(service, "")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class NHNCloudClient:
    """
    Entry point for NHN Cloud API calls.

    Use as a context manager so the underlying HTTP session is closed:

        with NHNCloudClient(store.build_client_config()) as client:
            client.mysql().list_instances()
    """

    def __init__(self, config: ClientConfig, session: requests.Session | None = None,
                 timeout: float = API_TIMEOUT):
        self.config = config
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        if self._owns_session:
            self.session.close()

    def mysql(self) -> "MySQLClient":
        if not self.config.credentials.is_complete():
            raise MissingCredentials(
                "RDS credentials not configured. Set access_key_id and secret_access_key "
                "(NHN_CLOUD_ACCESS_KEY_ID / NHN_CLOUD_SECRET_ACCESS_KEY or nhn_set_credential)."
            )
        app_key = self.config.app_key(SERVICE_RDS_MYSQL)
        if not app_key:
            raise ServiceNotConfigured(SERVICE_RDS_MYSQL)
        return MySQLClient(
            base_url=RDS_MYSQL_ENDPOINT.format(region=self.config.region),
            app_key=app_key,
            credentials=self.config.credentials,
            session=self.session,
            timeout=self.timeout,
        )


class MySQLClient:
    """RDS for MySQL API v3.0."""

    API_VERSION = "v3.0"

    def __init__(self, base_url: str, app_key: str, credentials: StaticCredentials,
                 session: requests.Session, timeout: float = API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self._headers = {
            "Content-Type": "application/json",
            "X-TC-APP-KEY": app_key,
            "X-TC-AUTHENTICATION-ID": credentials.access_key_id,
            "X-TC-AUTHENTICATION-SECRET": credentials.secret_access_key,
        }

    def _get(self, operation: str, path: str, params: dict | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{self.API_VERSION}{path}"
        logger.debug(f"{operation}: GET {url} params={params}")
        try:
            resp = self.session.get(url, headers=self._headers, params=params,
                                    timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteCallFailure(operation, str(e)) from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = _result_message(body) or resp.text[:200] or resp.reason
            raise RemoteCallFailure(operation, message, resp.status_code)
        if not isinstance(body, dict):
            raise RemoteCallFailure(operation, "response is not a JSON object", resp.status_code)

        header = body.get("header") or {}
        if header.get("isSuccessful") is False:
            raise RemoteCallFailure(
                operation,
                f"[{header.get('resultCode')}] {header.get('resultMessage', 'request failed')}",
                resp.status_code,
            )
        return body

    def list_instances(self) -> list[dict]:
        body = self._get("list instances", "/db-instances")
        return body.get("dbInstances") or []

    def get_instance(self, instance_id: str) -> dict:
        body = self._get("get instance", f"/db-instances/{quote(instance_id, safe='')}")
        # Detail responses put the instance fields next to the header
        return {k: v for k, v in body.items() if k != "header"}

    def list_flavors(self) -> list[dict]:
        body = self._get("list flavors", "/db-flavors")
        return body.get("dbFlavors") or []

    def list_backups(self, instance_id: str = "", page: int = 1, size: int = 100) -> list[dict]:
        params = {"page": page, "size": size}
        if instance_id:
            params["dbInstanceId"] = instance_id
        body = self._get("list backups", "/backups", params=params)
        return body.get("backups") or []


def _result_message(body) -> str:
    if isinstance(body, dict):
        header = body.get("header") or {}
        return header.get("resultMessage", "")
    return ""
