import os


# Server Configuration
SERVER_NAME = "nhn-cloud-mcp"
SERVER_VERSION = "0.1.0"
TRANSPORT = os.environ.get("NHN_CLOUD_MCP_TRANSPORT", "stdio")
PORT = int(os.environ.get("PORT", 8080))
HOST = os.environ.get("HOST", "0.0.0.0")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Credentials (values themselves live in the credential store, not here)
DEFAULT_REGION = "kr1"
CREDENTIALS_DIR = ".nhncloud"
CREDENTIALS_FILENAME = "credentials"

# NHN Cloud API Configuration
RDS_MYSQL_ENDPOINT = os.environ.get(
    "NHN_CLOUD_RDS_MYSQL_ENDPOINT",
    "https://{region}-rds-mysql.api.nhncloudservice.com"
)
API_TIMEOUT = float(os.environ.get("NHN_CLOUD_API_TIMEOUT", 30))
