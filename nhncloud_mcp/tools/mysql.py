"""
RDS for MySQL tools
===================
Read-only inventory queries against NHN Cloud RDS for MySQL:
  - nhn_mysql_list_instances
  - nhn_mysql_get_instance
  - nhn_mysql_list_flavors
  - nhn_mysql_list_backups

Each call builds a fresh client from the current credential store
snapshot, so credentials set with nhn_set_credential apply immediately.
"""

import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from nhncloud_mcp.credential_store import CredentialStore
from nhncloud_mcp.rds_client import NHNCloudClient, NHNCloudError

logger = logging.getLogger(__name__)


def _instance_record(inst: dict) -> dict:
    return {
        "id": inst.get("dbInstanceId", ""),
        "name": inst.get("dbInstanceName", ""),
        "status": inst.get("dbInstanceStatus", ""),
        "version": inst.get("dbVersion", ""),
        "storage_type": inst.get("storageType", ""),
        "storage_size_gb": inst.get("storageSize") or 0,
    }


def _flavor_record(flavor: dict) -> dict:
    return {
        "id": flavor.get("dbFlavorId", ""),
        "name": flavor.get("dbFlavorName", ""),
        "vcpus": flavor.get("vcpus") or 0,
        "ram_mb": flavor.get("ram") or 0,
    }


def _backup_record(backup: dict) -> dict:
    return {
        "id": backup.get("backupId", ""),
        "instance_id": backup.get("dbInstanceId", ""),
        "status": backup.get("backupStatus", ""),
        "size_gb": backup.get("backupSize") or 0,
        "created_at": backup.get("createdYmdt", ""),
    }


def _call_mysql(store: CredentialStore, client_factory, action: str, fn):
    """Run fn(mysql_client) with a per-call client; surface failures as tool errors."""
    try:
        with client_factory(store.build_client_config()) as client:
            return fn(client.mysql())
    except NHNCloudError as e:
        logger.error(f"Failed to {action}: {e}")
        raise ToolError(f"Failed to {action}: {e}") from e


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------

def list_instances(store: CredentialStore, client_factory=NHNCloudClient) -> dict:
    raw = _call_mysql(store, client_factory, "list instances",
                      lambda mysql: mysql.list_instances())
    instances = [_instance_record(i) for i in raw]
    return {"instances": instances, "count": len(instances)}


def get_instance(store: CredentialStore, instance_id: str,
                 client_factory=NHNCloudClient) -> dict:
    if not instance_id:
        raise ToolError("instance_id is required")
    raw = _call_mysql(store, client_factory, "get instance",
                      lambda mysql: mysql.get_instance(instance_id))
    return {"instance": _instance_record(raw)}


def list_flavors(store: CredentialStore, client_factory=NHNCloudClient) -> dict:
    raw = _call_mysql(store, client_factory, "list flavors",
                      lambda mysql: mysql.list_flavors())
    flavors = [_flavor_record(f) for f in raw]
    return {"flavors": flavors, "count": len(flavors)}


def list_backups(store: CredentialStore, instance_id: str = "",
                 client_factory=NHNCloudClient) -> dict:
    raw = _call_mysql(store, client_factory, "list backups",
                      lambda mysql: mysql.list_backups(instance_id))
    backups = [_backup_record(b) for b in raw]
    return {"backups": backups, "count": len(backups)}


# ---------------------------------------------------------------------------
# MCP registration
# ---------------------------------------------------------------------------

def register_mysql_tools(mcp: FastMCP, store: CredentialStore,
                         client_factory=NHNCloudClient) -> None:

    @mcp.tool(
        name="nhn_mysql_list_instances",
        description=(
            "List all NHN Cloud RDS MySQL instances. Returns instance ID, name, "
            "status, version, storage type, and storage size."
        ),
    )
    def nhn_mysql_list_instances() -> str:
        out = list_instances(store, client_factory)
        logger.info(f"Found {out['count']} MySQL instances")
        return json.dumps(out)

    @mcp.tool(
        name="nhn_mysql_get_instance",
        description="Get details of a specific NHN Cloud RDS MySQL instance by ID.",
    )
    def nhn_mysql_get_instance(instance_id: str) -> str:
        """
        Args:
            instance_id: The ID of the MySQL instance
        """
        return json.dumps(get_instance(store, instance_id, client_factory))

    @mcp.tool(
        name="nhn_mysql_list_flavors",
        description=(
            "List all available NHN Cloud RDS MySQL flavors (instance types). "
            "Returns flavor ID, name, vCPUs, and RAM."
        ),
    )
    def nhn_mysql_list_flavors() -> str:
        return json.dumps(list_flavors(store, client_factory))

    @mcp.tool(
        name="nhn_mysql_list_backups",
        description="List NHN Cloud RDS MySQL backups. Optionally filter by instance ID.",
    )
    def nhn_mysql_list_backups(instance_id: str = "") -> str:
        """
        Args:
            instance_id: Filter by instance ID (optional)
        """
        out = list_backups(store, instance_id, client_factory)
        logger.info(f"Found {out['count']} MySQL backups")
        return json.dumps(out)
