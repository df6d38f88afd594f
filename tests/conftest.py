import pytest

from nhncloud_mcp.credential_store import CredentialStore


@pytest.fixture
def credentials_file(tmp_path):
    """Write a credentials file and return its path."""
    def _write(text: str):
        path = tmp_path / "credentials"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def missing_file(tmp_path):
    return tmp_path / "does-not-exist" / "credentials"


@pytest.fixture
def empty_store(missing_file):
    """Store resolved with no file and no environment variables."""
    return CredentialStore.initialize(credentials_path=missing_file, environ={})
