"""
NHN Cloud MCP Server
====================
Exposes NHN Cloud credential management and RDS for MySQL inventory
queries as MCP tools.

MCP Tools:
  - nhn_set_credential / nhn_get_credential_status
  - nhn_mysql_list_instances / nhn_mysql_get_instance
  - nhn_mysql_list_flavors / nhn_mysql_list_backups

Credentials are resolved once at startup (credentials file, then
environment) and can be overridden at runtime with nhn_set_credential.
"""

import logging

from mcp.server.fastmcp import FastMCP

from nhncloud_mcp.config import HOST, LOG_LEVEL, PORT, SERVER_NAME, SERVER_VERSION, TRANSPORT
from nhncloud_mcp.credential_store import CredentialStore
from nhncloud_mcp.tools.auth import register_auth_tools
from nhncloud_mcp.tools.mysql import register_mysql_tools

logger = logging.getLogger("nhn-cloud-mcp")

SERVER_INSTRUCTIONS = """
This server manages NHN Cloud credentials and queries RDS for MySQL.

Call nhn_get_credential_status first. If RDS is not ready, ask the user for
the missing keys and set them with nhn_set_credential. MySQL tools also need
the mysql_appkey credential.
"""


def create_server(store: CredentialStore) -> FastMCP:
    """Build the FastMCP server with every tool bound to the given store."""
    mcp = FastMCP(
        SERVER_NAME,
        instructions=SERVER_INSTRUCTIONS,
        host=HOST,
        port=PORT
    )
    register_auth_tools(mcp, store)
    register_mysql_tools(mcp, store)
    return mcp


def _log_readiness(store: CredentialStore) -> None:
    if not store.has_rds_credentials():
        logger.warning(
            "RDS credentials not configured. Set NHN_CLOUD_ACCESS_KEY_ID and "
            "NHN_CLOUD_SECRET_ACCESS_KEY, or use nhn_set_credential."
        )
    elif not store.get_status()["mysql_app_key"]["configured"]:
        logger.warning("MySQL app key not configured. Set NHN_CLOUD_MYSQL_APPKEY.")

    if store.has_compute_credentials():
        logger.info("Compute credentials configured")
    else:
        logger.warning(
            "Compute credentials not configured. Set NHN_CLOUD_USERNAME, "
            "NHN_CLOUD_PASSWORD and NHN_CLOUD_TENANT_ID, or use nhn_set_credential."
        )


def main():
    # stdout belongs to the stdio transport, so logs go to stderr
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    store = CredentialStore.initialize()
    _log_readiness(store)

    mcp = create_server(store)
    logger.info(f"Starting {SERVER_NAME} v{SERVER_VERSION} ({TRANSPORT})")
    mcp.run(transport=TRANSPORT)


if __name__ == "__main__":
    main()
