"""
Credential Store
================
Thread-safe in-memory store for NHN Cloud credentials.

Fields are resolved once at startup, in layers:
  1. ~/.nhncloud/credentials, [default] profile (fills empty fields)
  2. NHN_CLOUD_* environment variables (override file values)
  3. Region falls back to DEFAULT_REGION

At runtime nhn_set_credential overrides any field unconditionally.

NOTE: earlier documentation described the order as "file > env".
The resolvers have always let the environment win over the file,
and that is the behavior kept here.

Each field remembers which layer set it. Value and source are always
written together under a single reader/writer lock that covers the
whole store, so readers see a consistent snapshot across fields.
"""

import logging
import os
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from nhncloud_mcp.config import CREDENTIALS_DIR, CREDENTIALS_FILENAME, DEFAULT_REGION
from nhncloud_mcp.rds_client import (
    SERVICE_RDS_MARIADB,
    SERVICE_RDS_MYSQL,
    SERVICE_RDS_POSTGRESQL,
    ClientConfig,
    IdentityCredentials,
    StaticCredentials,
)

logger = logging.getLogger(__name__)


class CredentialField(str, Enum):
    REGION = "region"
    ACCESS_KEY_ID = "access_key_id"
    SECRET_ACCESS_KEY = "secret_access_key"
    MYSQL_APP_KEY = "mysql_app_key"
    MARIADB_APP_KEY = "mariadb_app_key"
    POSTGRESQL_APP_KEY = "postgresql_app_key"
    USERNAME = "username"
    PASSWORD = "password"
    TENANT_ID = "tenant_id"
    NKS_TENANT_ID = "nks_tenant_id"
    OBS_TENANT_ID = "obs_tenant_id"


class CredentialSource(str, Enum):
    FILE = "file"
    ENVIRONMENT = "environment"
    INTERACTIVE = "interactive"
    DEFAULT = "default"
    NONE = "none"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CredentialError(Exception):
    """Base class for credential store errors."""


class InvalidFieldKey(CredentialError):
    def __init__(self, key: str, valid_keys=None):
        self.key = key
        valid_keys = list(INTERACTIVE_KEYS if valid_keys is None else valid_keys)
        super().__init__(f"Invalid key: {key}. Valid keys: {', '.join(valid_keys)}")


class EmptyCredentialValue(CredentialError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Credential '{key}' requires a non-empty value")


class CredentialsFileUnavailable(CredentialError):
    """The credentials file is missing or unreadable. Never fatal."""


# ---------------------------------------------------------------------------
# Key tables
# ---------------------------------------------------------------------------

# Keys accepted by nhn_set_credential
INTERACTIVE_KEYS = {
    "access_key_id": CredentialField.ACCESS_KEY_ID,
    "secret_access_key": CredentialField.SECRET_ACCESS_KEY,
    "region": CredentialField.REGION,
    "mysql_appkey": CredentialField.MYSQL_APP_KEY,
    "mariadb_appkey": CredentialField.MARIADB_APP_KEY,
    "postgresql_appkey": CredentialField.POSTGRESQL_APP_KEY,
    "username": CredentialField.USERNAME,
    "password": CredentialField.PASSWORD,
    "tenant_id": CredentialField.TENANT_ID,
}

# Keys recognized in the [default] profile of the credentials file
FILE_KEYS = {
    "access_key_id": CredentialField.ACCESS_KEY_ID,
    "secret_access_key": CredentialField.SECRET_ACCESS_KEY,
    "region": CredentialField.REGION,
    "username": CredentialField.USERNAME,
    "api_password": CredentialField.PASSWORD,
    "tenant_id": CredentialField.TENANT_ID,
    "nks_tenant_id": CredentialField.NKS_TENANT_ID,
    "obs_tenant_id": CredentialField.OBS_TENANT_ID,
    "rds_app_key": CredentialField.MYSQL_APP_KEY,
    "rds_mariadb_app_key": CredentialField.MARIADB_APP_KEY,
    "rds_postgresql_app_key": CredentialField.POSTGRESQL_APP_KEY,
}

ENV_VARS = {
    CredentialField.REGION: "NHN_CLOUD_REGION",
    CredentialField.ACCESS_KEY_ID: "NHN_CLOUD_ACCESS_KEY_ID",
    CredentialField.SECRET_ACCESS_KEY: "NHN_CLOUD_SECRET_ACCESS_KEY",
    CredentialField.MYSQL_APP_KEY: "NHN_CLOUD_MYSQL_APPKEY",
    CredentialField.MARIADB_APP_KEY: "NHN_CLOUD_MARIADB_APPKEY",
    CredentialField.POSTGRESQL_APP_KEY: "NHN_CLOUD_POSTGRESQL_APPKEY",
    CredentialField.USERNAME: "NHN_CLOUD_USERNAME",
    CredentialField.PASSWORD: "NHN_CLOUD_PASSWORD",
    CredentialField.TENANT_ID: "NHN_CLOUD_TENANT_ID",
    CredentialField.NKS_TENANT_ID: "NHN_CLOUD_NKS_TENANT_ID",
    CredentialField.OBS_TENANT_ID: "NHN_CLOUD_OBS_TENANT_ID",
}

# Fields reported by get_status(), in display order
STATUS_FIELDS = (
    CredentialField.ACCESS_KEY_ID,
    CredentialField.SECRET_ACCESS_KEY,
    CredentialField.REGION,
    CredentialField.MYSQL_APP_KEY,
    CredentialField.MARIADB_APP_KEY,
    CredentialField.POSTGRESQL_APP_KEY,
    CredentialField.USERNAME,
    CredentialField.PASSWORD,
    CredentialField.TENANT_ID,
)

RDS_FIELDS = (CredentialField.ACCESS_KEY_ID, CredentialField.SECRET_ACCESS_KEY)
COMPUTE_FIELDS = (
    CredentialField.USERNAME,
    CredentialField.PASSWORD,
    CredentialField.TENANT_ID,
)


def default_credentials_path() -> Path:
    return Path.home() / CREDENTIALS_DIR / CREDENTIALS_FILENAME


class _ReadWriteLock:
    """Many concurrent readers or a single writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CredentialStore:
    """
    Resolved NHN Cloud credentials plus the source of each value.

    Build it with CredentialStore.initialize() and pass the instance to
    whatever needs it. A bare CredentialStore() is empty: every field
    unset, every source "none".
    """

    def __init__(self):
        self._lock = _ReadWriteLock()
        self._values: dict[CredentialField, str] = {f: "" for f in CredentialField}
        self._sources: dict[CredentialField, CredentialSource] = {}
        self._credentials_path: Path | None = None
        self._environ = None

    @classmethod
    def initialize(cls, credentials_path=None, environ=None) -> "CredentialStore":
        """
        Create a store and resolve it from the credentials file, then the
        environment.

        Args:
            credentials_path: Credentials file to read. Defaults to
                ~/.nhncloud/credentials. A missing file is not an error.
            environ: Mapping of environment variables. Defaults to os.environ.
        """
        store = cls()
        store._credentials_path = (
            Path(credentials_path) if credentials_path else default_credentials_path()
        )
        store._environ = environ
        load_from_file(store, store._credentials_path)
        load_from_env(store, os.environ if environ is None else environ)
        return store

    def reload(self) -> None:
        """Re-resolve from file and environment. Interactive values are dropped."""
        fresh = CredentialStore.initialize(self._credentials_path, self._environ)
        with self._lock.write():
            self._values = fresh._values
            self._sources = fresh._sources
        logger.info("Credentials reloaded from file and environment")

    # -- mutation ---------------------------------------------------------

    def _apply(self, field: CredentialField, value: str, source: CredentialSource,
               only_if_empty: bool = False) -> bool:
        if not value:
            return False
        with self._lock.write():
            if only_if_empty and self._values[field]:
                return False
            self._values[field] = value
            self._sources[field] = source
        return True

    def set_interactive(self, key: str, value: str) -> CredentialField:
        """
        Override a credential at runtime, whatever its current source.

        Raises:
            InvalidFieldKey: key is not one of INTERACTIVE_KEYS.
            EmptyCredentialValue: value is empty or whitespace.

        Any other value is stored exactly as given.
        """
        field = INTERACTIVE_KEYS.get(key)
        if field is None:
            raise InvalidFieldKey(key)
        if not value or not value.strip():
            raise EmptyCredentialValue(key)
        self._apply(field, value, CredentialSource.INTERACTIVE)
        logger.info(f"Credential '{key}' set (source: interactive)")
        return field

    # -- inspection -------------------------------------------------------

    def get_source(self, field) -> CredentialSource:
        if not isinstance(field, CredentialField):
            try:
                field = CredentialField(field)
            except ValueError:
                raise InvalidFieldKey(field, [f.value for f in CredentialField]) from None
        with self._lock.read():
            return self._sources.get(field, CredentialSource.NONE)

    def get_status(self) -> dict[str, dict]:
        """Configured flag and source for each field in STATUS_FIELDS. Never includes values."""
        with self._lock.read():
            return {
                f.value: {
                    "configured": bool(self._values[f]),
                    "source": self._sources.get(f, CredentialSource.NONE).value,
                }
                for f in STATUS_FIELDS
            }

    def has_rds_credentials(self) -> bool:
        with self._lock.read():
            return all(self._values[f] for f in RDS_FIELDS)

    def has_compute_credentials(self) -> bool:
        with self._lock.read():
            return all(self._values[f] for f in COMPUTE_FIELDS)

    def build_client_config(self) -> ClientConfig:
        """Snapshot the store into an immutable ClientConfig for NHNCloudClient."""
        with self._lock.read():
            values = dict(self._values)

        identity = None
        if all(values[f] for f in COMPUTE_FIELDS):
            identity = IdentityCredentials(
                username=values[CredentialField.USERNAME],
                password=values[CredentialField.PASSWORD],
                tenant_id=values[CredentialField.TENANT_ID],
            )

        return ClientConfig(
            region=values[CredentialField.REGION],
            credentials=StaticCredentials(
                access_key_id=values[CredentialField.ACCESS_KEY_ID],
                secret_access_key=values[CredentialField.SECRET_ACCESS_KEY],
            ),
            identity=identity,
            app_keys=MappingProxyType({
                SERVICE_RDS_MYSQL: values[CredentialField.MYSQL_APP_KEY],
                SERVICE_RDS_MARIADB: values[CredentialField.MARIADB_APP_KEY],
                SERVICE_RDS_POSTGRESQL: values[CredentialField.POSTGRESQL_APP_KEY],
            }),
        )


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------

def _read_lines(path) -> list[str]:
    try:
        with open(path, encoding="utf-8") as fh:
            return fh.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialsFileUnavailable(f"{path}: {e}") from e


def _default_profile_entries(lines):
    """Yield (key, value) pairs found under the [default] profile."""
    in_default = False
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("[") and line.endswith("]"):
            in_default = line[1:-1] == "default"
            continue

        if not in_default or "=" not in line:
            continue

        key, value = line.split("=", 1)
        yield key.strip(), value.strip()


def load_from_file(store: CredentialStore, path) -> int:
    """
    Fill empty fields from the [default] profile of a credentials file.

    Returns the number of fields set. A missing or unreadable file sets
    nothing and is not an error.
    """
    try:
        lines = _read_lines(path)
    except CredentialsFileUnavailable as e:
        logger.debug(f"No credentials file loaded ({e})")
        return 0

    applied = 0
    for key, value in _default_profile_entries(lines):
        field = FILE_KEYS.get(key)
        if field is None:
            continue
        if store._apply(field, value, CredentialSource.FILE, only_if_empty=True):
            applied += 1

    logger.info(f"Loaded {applied} credential(s) from {path}")
    return applied


def load_from_env(store: CredentialStore, environ) -> int:
    """Override fields from NHN_CLOUD_* variables, then default the region."""
    applied = []
    for field, var in ENV_VARS.items():
        if store._apply(field, environ.get(var, ""), CredentialSource.ENVIRONMENT):
            applied.append(var)

    if applied:
        logger.info(f"Credentials from environment: {applied}")

    if store._apply(CredentialField.REGION, DEFAULT_REGION, CredentialSource.DEFAULT,
                    only_if_empty=True):
        logger.info(f"Region not configured, using default '{DEFAULT_REGION}'")

    return len(applied)
