"""Configuration module for the Pool Trade Tracker server."""

# Standard library imports
import os
from typing import Any, Optional
from dataclasses import dataclass
from functools import lru_cache
import re

# Third-party library imports
from dotenv import load_dotenv

# Internal imports
from pool_tracker.constants import (
    DEFAULT_RPC_URL,
    DEFAULT_POOL_ID,
    DEFAULT_POOL_API_BASE_URL,
    DEFAULT_TOKEN_MINT,
    NATIVE_MINT,
    NATIVE_DECIMALS,
)

# Load environment variables from .env file
load_dotenv()

def get_env_var(key: str, default: Any = None, required: bool = False,
               validator: Optional[callable] = None) -> Any:
    """Get and validate environment variable.

    Args:
        key: Environment variable name
        default: Default value if not present
        required: If True, raises ValueError when not found
        validator: Optional validation function

    Returns:
        The environment variable value or default

    Raises:
        ValueError: If required and not found, or fails validation
    """
    value = os.environ.get(key)

    if value is None or value == "":
        if required:
            raise ValueError(f"Required environment variable '{key}' not found")
        return default

    if validator:
        try:
            return validator(value)
        except Exception as e:
            raise ValueError(f"Invalid value for environment variable '{key}': {str(e)}")

    return value


def int_validator(value: str) -> int:
    """Validate and convert string to integer.

    Args:
        value: String value to convert

    Returns:
        Integer value

    Raises:
        ValueError: If not a valid integer
    """
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid integer")


def positive_int_validator(value: str) -> int:
    """Validate and convert string to a strictly positive integer."""
    number = int_validator(value)
    if number <= 0:
        raise ValueError(f"'{value}' must be greater than zero")
    return number


def float_validator(value: str) -> float:
    """Validate and convert string to a non-negative float."""
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid number")
    if number < 0:
        raise ValueError(f"'{value}' must not be negative")
    return number


def url_validator(value: str) -> str:
    """Validate URL format.

    Args:
        value: URL to validate

    Returns:
        The validated URL

    Raises:
        ValueError: If not a valid URL format
    """
    url_pattern = re.compile(
        r'^(https?|wss?):\/\/'  # http(s):// or ws(s)://
        r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+(?:[A-Z]{2,6}\.?|[A-Z0-9-]{2,}\.?)|'  # domain
        r'localhost|'  # localhost
        r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # or IPv4
        r'(?::\d+)?'  # optional port
        r'(?:/?|[/?]\S+)$', re.IGNORECASE)

    if not url_pattern.match(value):
        raise ValueError(f"'{value}' is not a valid URL")
    return value


def commitment_validator(value: str) -> str:
    """Validate Solana commitment level.

    Args:
        value: Commitment level to validate

    Returns:
        The validated commitment level

    Raises:
        ValueError: If not a valid commitment level
    """
    valid_commitments = ("processed", "confirmed", "finalized")
    if value.lower() not in valid_commitments:
        raise ValueError(f"Commitment must be one of: {', '.join(valid_commitments)}")
    return value.lower()


def log_level_validator(value: str) -> str:
    """Validate log level.

    Args:
        value: Log level to validate

    Returns:
        The validated log level

    Raises:
        ValueError: If not a valid log level
    """
    valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    upper_value = value.upper()
    if upper_value not in valid_levels:
        raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
    return upper_value


def environment_validator(value: str) -> str:
    """Validate environment name.

    Args:
        value: Environment name to validate

    Returns:
        The validated environment name

    Raises:
        ValueError: If not a valid environment name
    """
    valid_environments = ("development", "testing", "staging", "production")
    if value.lower() not in valid_environments:
        raise ValueError(f"Environment must be one of: {', '.join(valid_environments)}")
    return value.lower()


def http_to_ws_url(rpc_url: str) -> str:
    """Derive the websocket endpoint from an HTTP RPC URL."""
    return rpc_url.replace("http://", "ws://").replace("https://", "wss://")


@dataclass
class SolanaConfig:
    """Configuration for the Solana RPC connection."""

    rpc_url: str = DEFAULT_RPC_URL
    ws_url: Optional[str] = None
    commitment: str = "confirmed"
    timeout: int = 30  # seconds

    @property
    def websocket_url(self) -> str:
        """Websocket endpoint, derived from the RPC URL unless set explicitly."""
        return self.ws_url or http_to_ws_url(self.rpc_url)


@lru_cache()
def get_solana_config() -> SolanaConfig:
    """Get Solana configuration from environment variables.

    Uses cached values for efficiency.

    Returns:
        SolanaConfig instance

    Raises:
        ValueError: If environment variables fail validation
    """
    return SolanaConfig(
        rpc_url=get_env_var("SOLANA_RPC_URL", DEFAULT_RPC_URL,
                            validator=url_validator),
        ws_url=get_env_var("SOLANA_WS_URL", validator=url_validator),
        commitment=get_env_var("SOLANA_COMMITMENT", "confirmed",
                              validator=commitment_validator),
        timeout=get_env_var("SOLANA_TIMEOUT", 30, validator=positive_int_validator)
    )


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def bind_address(self) -> str:
        """Get the bind address for the server.

        Returns:
            Formatted bind address
        """
        return f"{self.host}:{self.port}"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.environment not in ("development", "testing", "staging", "production"):
            raise ValueError(f"Invalid environment: {self.environment}")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {self.log_level}")


@lru_cache()
def get_server_config() -> ServerConfig:
    """Get server configuration from environment variables.

    Returns:
        ServerConfig instance

    Raises:
        ValueError: If environment variables fail validation
    """
    return ServerConfig(
        host=get_env_var("HOST", "0.0.0.0"),
        port=get_env_var("PORT", 3000, validator=positive_int_validator),
        environment=get_env_var("ENVIRONMENT", "development", validator=environment_validator),
        log_level=get_env_var("LOG_LEVEL", "INFO", validator=log_level_validator),
    )


@dataclass
class PoolConfig:
    """Configuration for the tracked pool and its trade stream."""

    pool_id: str = DEFAULT_POOL_ID
    base_mint: str = NATIVE_MINT
    token_mint: str = DEFAULT_TOKEN_MINT
    pool_api_base_url: str = DEFAULT_POOL_API_BASE_URL
    history_limit: int = 1000
    history_capacity: int = 8000
    replay_limit: int = 2000
    keepalive_interval: float = 15.0  # seconds
    holders_cache_ttl: float = 600.0  # seconds
    native_decimals: int = NATIVE_DECIMALS

    @property
    def pool_api_url(self) -> str:
        """Pool metadata endpoint for the tracked pool."""
        return f"{self.pool_api_base_url.rstrip('/')}/{self.pool_id}"


@lru_cache()
def get_pool_config() -> PoolConfig:
    """Get pool configuration from environment variables.

    Returns:
        PoolConfig instance
    """
    return PoolConfig(
        pool_id=get_env_var("POOL_ID", DEFAULT_POOL_ID),
        base_mint=get_env_var("BASE_MINT", NATIVE_MINT),
        token_mint=get_env_var("TOKEN_MINT", DEFAULT_TOKEN_MINT),
        pool_api_base_url=get_env_var("POOL_API_BASE_URL", DEFAULT_POOL_API_BASE_URL,
                                      validator=url_validator),
        history_limit=get_env_var("HISTORY_LIMIT", 1000, validator=positive_int_validator),
        history_capacity=get_env_var("HISTORY_CAPACITY", 8000, validator=positive_int_validator),
        replay_limit=get_env_var("REPLAY_LIMIT", 2000, validator=positive_int_validator),
        keepalive_interval=get_env_var("KEEPALIVE_INTERVAL", 15.0, validator=float_validator),
        holders_cache_ttl=get_env_var("HOLDERS_CACHE_TTL", 600.0, validator=float_validator),
        native_decimals=get_env_var("NATIVE_DECIMALS", NATIVE_DECIMALS, validator=int_validator),
    )


@dataclass
class RetryConfig:
    """Configuration for rate-limit retries against the RPC node."""

    max_retries: int = 6
    base_delay: float = 0.5  # seconds


@lru_cache()
def get_retry_config() -> RetryConfig:
    """Get retry configuration from environment variables."""
    return RetryConfig(
        max_retries=get_env_var("RPC_MAX_RETRIES", 6, validator=int_validator),
        base_delay=get_env_var("RPC_RETRY_BASE_DELAY", 0.5, validator=float_validator),
    )
