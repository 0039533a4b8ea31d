"""
AWS Systems Manager Parameter Store service.

Configuration values resolve from environment variables first (a ``.env``
file is loaded for local development), then from Parameter Store under the
``/raid-loot`` prefix when ``PARAMETER_STORE_ENABLED=true``.
"""

import os
from functools import lru_cache
from typing import Any, Dict, List

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

DEFAULT_PREFIX = "/raid-loot"

DEFAULT_ROSTER = ["Elodie", "Illya", "Rami", "Renc", "Ryu", "Sasha", "Sandro", "Lob"]
DEFAULT_BOOTSTRAP_ADMIN = "Sandro"
DEFAULT_XIVGEAR_API_URL = "https://api.xivgear.app"

# Every key the tracker reads, relative to the prefix
PARAMETER_KEYS = (
    "storage/backend",
    "dynamodb/table-name",
    "auth/session-secret",
    "auth/session-ttl-hours",
    "roster/default-members",
    "roster/bootstrap-admin",
    "xivgear/api-url",
)

# Cache for Parameter Store client
_ssm_client = None


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def parameter_store_enabled() -> bool:
    return os.getenv("PARAMETER_STORE_ENABLED", "false").strip().lower() == "true"


def env_var_name(parameter_name: str) -> str:
    """
    Environment variable that overrides a parameter.

    ``/raid-loot/storage/backend`` becomes ``RAID_LOOT_STORAGE_BACKEND``.
    """
    return parameter_name.strip("/").replace("/", "_").replace("-", "_").upper()


@lru_cache(maxsize=128)
def get_parameter(parameter_name: str, decrypt: bool = True) -> str | None:
    """
    Get a parameter from the environment or AWS Parameter Store with caching.

    Args:
        parameter_name: The name of the parameter to retrieve
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Parameter value or None if not found
    """
    local_value = os.getenv(env_var_name(parameter_name))
    if local_value:
        logger.debug(f"Using local environment variable for {parameter_name}")
        return local_value

    if not parameter_store_enabled():
        return None

    try:
        ssm = get_ssm_client()
        response = ssm.get_parameter(Name=parameter_name, WithDecryption=decrypt)
        value = response["Parameter"]["Value"]

        logger.debug(f"Retrieved parameter {parameter_name} from Parameter Store")
        return value

    except ClientError as e:
        error_code = e.response["Error"]["Code"]

        if error_code == "ParameterNotFound":
            logger.warning(f"Parameter {parameter_name} not found in Parameter Store")
        else:
            logger.error(f"Error retrieving parameter {parameter_name}: {e}")

        return None


class ParameterStoreConfig:
    """
    Configuration class that loads parameters from Parameter Store or environment.

    Provides typed accessors for every setting the tracker reads.
    """

    def __init__(self, parameter_prefix: str = DEFAULT_PREFIX):
        """
        Initialize configuration with parameter prefix.

        Args:
            parameter_prefix: Prefix for parameter names in Parameter Store
        """
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self._config_cache: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (will be prefixed with parameter_prefix)
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if key in self._config_cache:
            return self._config_cache[key]

        value = get_parameter(f"{self.parameter_prefix}/{key}")
        if value is None:
            value = default

        self._config_cache[key] = value
        return value

    def get_required(self, key: str) -> str:
        """
        Get a required configuration value.

        Raises:
            ValueError: If parameter is not found
        """
        value = self.get(key)
        if value is None:
            raise ValueError(
                f"Required parameter {self.parameter_prefix}/{key} not found"
            )
        return value

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(
                f"Parameter {self.parameter_prefix}/{key} must be an integer, got {value!r}"
            )

    def get_list(self, key: str, default: List[str]) -> List[str]:
        """Comma separated values; blank entries are dropped."""
        value = self.get(key)
        if value is None:
            return list(default)
        return [part.strip() for part in str(value).split(",") if part.strip()]

    @property
    def storage_backend(self) -> str:
        return str(self.get("storage/backend", "memory")).strip().lower()

    @property
    def table_name(self) -> str:
        return self.get("dynamodb/table-name", os.getenv("TABLE_NAME", "RaidLootTable"))

    @property
    def session_secret(self) -> str:
        return self.get_required("auth/session-secret")

    @property
    def session_ttl_hours(self) -> int:
        return self.get_int("auth/session-ttl-hours", 24)

    @property
    def default_members(self) -> List[str]:
        return self.get_list("roster/default-members", DEFAULT_ROSTER)

    @property
    def bootstrap_admin(self) -> str:
        return self.get("roster/bootstrap-admin", DEFAULT_BOOTSTRAP_ADMIN)

    @property
    def xivgear_api_url(self) -> str:
        return self.get("xivgear/api-url", DEFAULT_XIVGEAR_API_URL).rstrip("/")


# Global config instance
config = ParameterStoreConfig()


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameter.cache_clear()
    config._config_cache.clear()
    logger.info("Parameter Store cache cleared")
