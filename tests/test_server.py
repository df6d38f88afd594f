"""
Server wiring tests

Tools are registered on a real FastMCP instance and called through it.
"""

import asyncio
import logging

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from nhncloud_mcp.credential_store import CredentialSource, CredentialStore
from nhncloud_mcp.server import _log_readiness, create_server

EXPECTED_TOOLS = {
    "nhn_set_credential",
    "nhn_get_credential_status",
    "nhn_mysql_list_instances",
    "nhn_mysql_get_instance",
    "nhn_mysql_list_flavors",
    "nhn_mysql_list_backups",
}


def test_registers_all_tools(empty_store):
    mcp = create_server(empty_store)
    tools = asyncio.run(mcp.list_tools())
    assert {t.name for t in tools} == EXPECTED_TOOLS


def test_set_credential_through_server(empty_store):
    mcp = create_server(empty_store)
    asyncio.run(mcp.call_tool("nhn_set_credential", {"key": "region", "value": "kr2"}))

    assert empty_store.get_source("region") is CredentialSource.INTERACTIVE
    assert empty_store.build_client_config().region == "kr2"


def test_invalid_key_through_server(empty_store):
    mcp = create_server(empty_store)
    before = empty_store.get_status()

    with pytest.raises(ToolError, match="Invalid key"):
        asyncio.run(mcp.call_tool("nhn_set_credential", {"key": "bogus", "value": "x"}))

    assert empty_store.get_status() == before


def test_servers_do_not_share_stores(empty_store, missing_file):
    other = CredentialStore.initialize(credentials_path=missing_file, environ={})
    asyncio.run(create_server(empty_store).call_tool(
        "nhn_set_credential", {"key": "username", "value": "alice"}
    ))

    assert empty_store.get_source("username") is CredentialSource.INTERACTIVE
    assert other.get_source("username") is CredentialSource.NONE


def test_startup_warns_about_missing_compute_credentials(empty_store, caplog):
    with caplog.at_level(logging.WARNING):
        _log_readiness(empty_store)

    assert "RDS credentials not configured" in caplog.text
    assert "Compute credentials not configured" in caplog.text


def test_startup_compute_warning_clears_once_configured(empty_store, caplog):
    for key, value in (("username", "u"), ("password", "p"), ("tenant_id", "t")):
        empty_store.set_interactive(key, value)

    with caplog.at_level(logging.WARNING):
        _log_readiness(empty_store)

    assert "Compute credentials not configured" not in caplog.text
