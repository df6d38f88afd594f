"""
Credential tools
================
  - nhn_set_credential: override one credential at runtime
  - nhn_get_credential_status: which credentials are configured, and from where

Neither tool ever returns a credential value.
"""

import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from nhncloud_mcp.credential_store import (
    COMPUTE_FIELDS,
    INTERACTIVE_KEYS,
    RDS_FIELDS,
    CredentialError,
    CredentialStore,
)

logger = logging.getLogger(__name__)

VALID_KEYS = ", ".join(INTERACTIVE_KEYS)


def set_credential(store: CredentialStore, key: str, value: str) -> dict:
    try:
        store.set_interactive(key, value)
    except CredentialError as e:
        logger.warning(f"Rejected credential update: {e}")
        raise ToolError(str(e)) from e

    return {
        "success": True,
        "message": f"Credential '{key}' set successfully (source: interactive)",
    }


def get_credential_status(store: CredentialStore) -> dict:
    # Readiness comes from the same snapshot as the per-field list
    status = store.get_status()
    rds_ready = all(status[f.value]["configured"] for f in RDS_FIELDS)
    compute_ready = all(status[f.value]["configured"] for f in COMPUTE_FIELDS)
    return {
        "credentials": [
            {"name": name, "configured": info["configured"], "source": info["source"]}
            for name, info in status.items()
        ],
        "rds_ready": rds_ready,
        "compute_ready": compute_ready,
        "summary": f"RDS Ready: {rds_ready}, Compute Ready: {compute_ready}",
    }


def register_auth_tools(mcp: FastMCP, store: CredentialStore) -> None:

    @mcp.tool(
        name="nhn_set_credential",
        description=(
            "Set NHN Cloud credential at runtime. Use when credentials are not "
            "configured via file or environment variables. Keys: " + VALID_KEYS
        ),
    )
    def nhn_set_credential(key: str, value: str) -> str:
        """
        Args:
            key: Credential key, one of the keys listed in the description
            value: Credential value (never echoed back)

        Returns:
            JSON with success flag and message
        """
        return json.dumps(set_credential(store, key, value))

    @mcp.tool(
        name="nhn_get_credential_status",
        description=(
            "Check which NHN Cloud credentials are configured and their source "
            "(file, environment, interactive, default, or none). Does not expose "
            "credential values."
        ),
    )
    def nhn_get_credential_status() -> str:
        return json.dumps(get_credential_status(store))
