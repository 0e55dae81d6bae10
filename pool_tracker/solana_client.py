"""Async Solana JSON-RPC client for the pool tracker."""

# Standard library imports
import json
from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager

# Third-party library imports
import httpx

# Internal imports
from pool_tracker.config import SolanaConfig, get_solana_config
from pool_tracker.logging_config import get_logger
from pool_tracker.validation import (
    InvalidPublicKeyError,
    validate_public_key,
    validate_transaction_signature,
)
from pool_tracker.constants import TOKEN_PROGRAM_ID

# Get logger
logger = get_logger(__name__)

__all__ = [
    "SolanaRpcError",
    "InvalidPublicKeyError",
    "SolanaClient",
    "get_solana_client",
]


class SolanaRpcError(Exception):
    """Exception raised when a Solana RPC request fails."""

    def __init__(
        self,
        message: str,
        error_data: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        """Initialize the exception.

        Args:
            message: Error message
            error_data: Optional error data from the RPC response
            status_code: HTTP status code of the failed response, if any
        """
        super().__init__(message)
        self.error_data = error_data or {}
        self.status_code = status_code


class SolanaClient:
    """Client for the subset of the Solana JSON-RPC API the tracker needs.

    The client performs no retries of its own. Rate-limit responses surface as
    ``SolanaRpcError`` with ``status_code == 429`` so callers can wrap calls in
    :func:`pool_tracker.decorators.with_retry`.
    """

    def __init__(self, config: Optional[SolanaConfig] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the Solana client.

        Args:
            config: Solana configuration. Defaults to environment-based config.
            http_client: Optional pre-built httpx client (used by tests)
        """
        self.config = config or get_solana_config()
        self.headers = {"Content-Type": "application/json"}
        self._http_client = http_client
        self._request_id = 0

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.timeout,
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20)
            )
        return self._http_client

    def _options(self, **options: Any) -> Dict[str, Any]:
        """Build an RPC options object carrying the configured commitment."""
        config = {"commitment": self.config.commitment}
        config.update({k: v for k, v in options.items() if v is not None})
        return config

    async def _make_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC request to the Solana node.

        Args:
            method: The RPC method to call
            params: The parameters to pass to the method

        Returns:
            The ``result`` member of the JSON-RPC response

        Raises:
            SolanaRpcError: If the node answers with an HTTP or RPC error
            httpx.RequestError: If there's a network or request error
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or []
        }

        logger.debug(f"RPC request: method={method}")
        response = await self._get_http_client().post(
            self.config.rpc_url,
            headers=self.headers,
            json=payload
        )

        if response.status_code == 429:
            raise SolanaRpcError(
                f"Server responded with 429 Too Many Requests for {method}",
                status_code=429
            )
        if response.status_code >= 400:
            raise SolanaRpcError(
                f"HTTP {response.status_code} from RPC node for {method}: {response.text[:200]}",
                status_code=response.status_code
            )

        try:
            result = response.json()
        except json.JSONDecodeError as e:
            raise SolanaRpcError(f"Invalid JSON from RPC node for {method}: {str(e)}")

        if "error" in result:
            error = result["error"] or {}
            message = f"Solana RPC error: {error.get('message', 'Unknown error')}"
            if "data" in error:
                message += f" - {json.dumps(error['data'])}"
            raise SolanaRpcError(message, error)

        return result.get("result")

    async def get_account_info(self, account: str, encoding: str = "base64") -> Dict[str, Any]:
        """Get account information.

        Args:
            account: The account public key
            encoding: The encoding for the account data

        Returns:
            RPC result ``{"context": ..., "value": <account or None>}``

        Raises:
            InvalidPublicKeyError: If the account is not a valid Solana public key
        """
        if not validate_public_key(account):
            raise InvalidPublicKeyError(account)

        return await self._make_request(
            "getAccountInfo",
            [account, self._options(encoding=encoding)]
        )

    async def get_signatures_for_address(
        self,
        address: str,
        before: Optional[str] = None,
        limit: int = 1000
    ) -> List[Dict[str, Any]]:
        """Get transaction signatures for an address, newest first.

        Args:
            address: The account address
            before: Signature to start searching backwards from
            limit: Maximum number of signatures to return

        Returns:
            List of signature info objects

        Raises:
            InvalidPublicKeyError: If the address is not a valid Solana public key
        """
        if not validate_public_key(address):
            raise InvalidPublicKeyError(address)

        result = await self._make_request(
            "getSignaturesForAddress",
            [address, self._options(limit=limit, before=before)]
        )
        return result or []

    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """Get a transaction with jsonParsed encoding.

        Args:
            signature: The transaction signature

        Returns:
            Parsed transaction, or None if the node does not know it
        """
        if not validate_transaction_signature(signature):
            raise ValueError(f"Invalid transaction signature format: {signature}")

        return await self._make_request(
            "getTransaction",
            [signature, self._options(encoding="jsonParsed", maxSupportedTransactionVersion=0)]
        )

    async def get_program_accounts(
        self,
        program_id: str,
        filters: Optional[List[Dict[str, Any]]] = None,
        data_slice: Optional[Dict[str, int]] = None,
        encoding: str = "base64"
    ) -> List[Dict[str, Any]]:
        """Get all accounts owned by a program.

        Args:
            program_id: The program ID
            filters: Optional memcmp/dataSize filters
            data_slice: Optional ``{"offset": int, "length": int}`` byte range
            encoding: The encoding for the account data

        Returns:
            List of ``{"pubkey": ..., "account": {...}}`` entries

        Raises:
            InvalidPublicKeyError: If the program_id is not a valid Solana public key
        """
        if not validate_public_key(program_id):
            raise InvalidPublicKeyError(program_id)

        options = self._options(encoding=encoding, filters=filters, dataSlice=data_slice)
        result = await self._make_request("getProgramAccounts", [program_id, options])
        return result or []

    async def get_token_accounts_by_owner(
        self,
        owner: str,
        program_id: str = TOKEN_PROGRAM_ID,
        encoding: str = "base64"
    ) -> List[Dict[str, Any]]:
        """Get token accounts owned by an address under one token program.

        Args:
            owner: The owner public key
            program_id: Token program ID
            encoding: The encoding for the account data

        Returns:
            List of ``{"pubkey": ..., "account": {...}}`` entries

        Raises:
            InvalidPublicKeyError: If owner or program_id is not a valid public key
        """
        if not validate_public_key(owner):
            raise InvalidPublicKeyError(owner)
        if not validate_public_key(program_id):
            raise InvalidPublicKeyError(program_id)

        result = await self._make_request(
            "getTokenAccountsByOwner",
            [owner, {"programId": program_id}, self._options(encoding=encoding)]
        )
        return (result or {}).get("value", [])

    async def __aenter__(self):
        """Async context manager entry.

        Returns:
            Self
        """
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the client and release resources."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


@asynccontextmanager
async def get_solana_client(config: Optional[SolanaConfig] = None):
    """Get a Solana client as an async context manager.

    Yields:
        SolanaClient: An initialized Solana client.
    """
    client = SolanaClient(config)
    try:
        yield client
    finally:
        await client.close()
