"""
Bitcoin Cash Node RPC chain backend.
Uses non-wallet RPC calls only (scantxoutset, validateaddress, ...).
"""

from __future__ import annotations

import asyncio
import os
import random
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger
from vaultcore.errors import BackendError, InvalidParameterError
from vaultcore.models import UTXO, NftCapability, NftData, TokenData

from vaultwallet.backends.base import ChainBackend

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# Timeout for scantxoutset calls - a full UTXO set pass can take minutes
SCAN_RPC_TIMEOUT = 300.0

# Retries for scantxoutset when another scan is in progress
SCAN_MAX_RETRIES = 10
SCAN_BASE_DELAY = 0.5  # Base delay in seconds for exponential backoff

SATS_PER_COIN = Decimal(100_000_000)

# Environment variable to enable sensitive logging (addresses, raw results)
SENSITIVE_LOGGING = os.environ.get("SENSITIVE_LOGGING", "").lower() in ("1", "true", "yes")


def coins_to_sats(amount: Any) -> int:
    """Convert an RPC coin amount to satoshis without float rounding."""
    return int((Decimal(str(amount)) * SATS_PER_COIN).to_integral_value())


def parse_token_data(data: dict[str, Any] | None) -> TokenData | None:
    """Parse the node's tokenData object."""
    if not data:
        return None

    nft = None
    nft_data = data.get("nft")
    if nft_data:
        nft = NftData(
            capability=NftCapability(nft_data.get("capability", "none")),
            commitment=nft_data.get("commitment", ""),
        )

    # Large fungible amounts are reported as strings
    return TokenData(
        category=data["category"],
        amount=int(data.get("amount", 0)),
        nft=nft,
    )


class BchnBackend(ChainBackend):
    """
    Chain backend using Bitcoin Cash Node JSON-RPC.
    Does NOT use the node wallet.
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:8332",
        rpc_user: str = "rpcuser",
        rpc_password: str = "rpcpassword",
        scan_timeout: float = SCAN_RPC_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.scan_timeout = scan_timeout
        self.client = httpx.AsyncClient(
            timeout=DEFAULT_RPC_TIMEOUT, auth=(rpc_user, rpc_password), transport=transport
        )
        # Separate client for long-running scans
        self._scan_client = httpx.AsyncClient(
            timeout=scan_timeout, auth=(rpc_user, rpc_password), transport=transport
        )
        self._request_id = 0

    async def _rpc_call(
        self,
        method: str,
        params: list | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Any:
        """
        Make an RPC call to the node.

        Raises:
            BackendError: On RPC errors, connection failures and timeouts
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        use_client = client or self.client

        try:
            response = await use_client.post(self.rpc_url, json=payload)
            # The node answers RPC errors with HTTP 500 and a JSON body
            data = response.json(parse_float=Decimal)
        except httpx.TimeoutException as e:
            logger.error(f"RPC call timed out: {method} - {e}")
            raise BackendError(f"RPC call {method} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise BackendError(f"RPC call {method} failed: {e}") from e
        except ValueError as e:
            raise BackendError(
                f"RPC call {method} returned a non-JSON response (HTTP {response.status_code})"
            ) from e

        if data.get("error"):
            error_info = data["error"]
            error_code = error_info.get("code", "unknown")
            error_msg = error_info.get("message", str(error_info))
            raise BackendError(f"RPC error {error_code}: {error_msg}")

        return data.get("result")

    async def _scantxoutset_with_retry(self, descriptors: list[str]) -> dict[str, Any]:
        """
        Execute scantxoutset, waiting out scans started by other clients.

        The node only allows one scantxoutset at a time.
        """
        for attempt in range(SCAN_MAX_RETRIES):
            try:
                logger.debug(f"Starting UTXO scan for {len(descriptors)} descriptor(s)...")
                if SENSITIVE_LOGGING:
                    logger.debug(f"Descriptors for scan: {descriptors}")
                result = await self._rpc_call(
                    "scantxoutset", ["start", descriptors], client=self._scan_client
                )
                if not result or not result.get("success", True):
                    raise BackendError("scantxoutset did not complete")
                return result

            except BackendError as e:
                if "Scan already in progress" not in str(e) or attempt == SCAN_MAX_RETRIES - 1:
                    raise
                delay = SCAN_BASE_DELAY * (2**attempt) + random.uniform(0, 0.5)
                logger.debug(
                    f"Scan in progress, retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{SCAN_MAX_RETRIES})"
                )
                await asyncio.sleep(delay)

        raise BackendError(f"scantxoutset failed after {SCAN_MAX_RETRIES} attempts")

    async def get_block_height(self) -> int:
        height = await self._rpc_call("getblockcount")
        logger.debug(f"Current block height: {height}")
        return int(height)

    async def get_utxos(self, address: str) -> list[UTXO]:
        result = await self._scantxoutset_with_retry([f"addr({address})"])

        utxos: list[UTXO] = []
        for utxo_data in result.get("unspents", []):
            utxos.append(
                UTXO(
                    txid=utxo_data["txid"],
                    vout=utxo_data["vout"],
                    satoshis=coins_to_sats(utxo_data["amount"]),
                    token=parse_token_data(utxo_data.get("tokenData")),
                    locking_bytecode=utxo_data.get("scriptPubKey", ""),
                    height=utxo_data.get("height"),
                )
            )

        logger.debug(f"Scanned {address}: found {len(utxos)} UTXOs")
        if SENSITIVE_LOGGING:
            logger.debug(f"Scan result: {result}")
        return utxos

    async def get_locking_bytecode(self, address: str) -> bytes:
        info = await self._rpc_call("validateaddress", [address])
        if not info or not info.get("isvalid"):
            raise InvalidParameterError(f"Invalid address: {address}")
        return bytes.fromhex(info["scriptPubKey"])

    async def broadcast_transaction(self, tx_hex: str) -> str:
        try:
            txid = await self._rpc_call("sendrawtransaction", [tx_hex])
        except BackendError as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            raise BackendError(f"Broadcast failed: {e}") from e

        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def close(self) -> None:
        await self.client.aclose()
        await self._scan_client.aclose()
