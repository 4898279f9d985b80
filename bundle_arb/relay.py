"""
Flashbots-compatible relay client.

Speaks JSON-RPC over HTTP with aiohttp. Every request is authenticated with
an X-Flashbots-Signature header: the relay signing account's EIP-191
signature of the keccak hash of the request body. The relay signing account
is only a reputation identity; transactions are signed by the searcher.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .chain import ChainProvider
from .exceptions import RelayError, SigningError, SimulationError
from .types import (
    BundleEntry,
    BundleResolution,
    SignedBundle,
    SignedBundleTransaction,
    SimulationResult,
)
from .utils import parse_quantity, to_hex_str

logger = logging.getLogger(__name__)


class BundleSubmission:
    """
    Handle for a bundle sent to the relay for one target block.

    wait() resolves once the target block has been mined.
    """

    def __init__(
        self,
        chain: ChainProvider,
        bundle: SignedBundle,
        target_block: int,
        bundle_hash: str,
        poll_interval: float = 1.0,
    ):
        self.chain = chain
        self.bundle = bundle
        self.target_block = target_block
        self.bundle_hash = bundle_hash
        self.poll_interval = poll_interval

    async def wait(self) -> BundleResolution:
        """
        Wait for the target block and decide what happened to the bundle.

        Returns:
            BUNDLE_INCLUDED if every bundle transaction is in the target block,
            ACCOUNT_NONCE_TOO_HIGH if a signer's nonce was consumed by some
            other transaction, BLOCK_PASSED_WITHOUT_INCLUSION otherwise
        """
        await self.chain.wait_for_block(self.target_block, self.poll_interval)

        block = await self.chain.get_block(self.target_block)
        included = {to_hex_str(tx).lower() for tx in block.get("transactions", [])}
        if all(tx_hash.lower() in included for tx_hash in self.bundle.tx_hashes):
            return BundleResolution.BUNDLE_INCLUDED

        for tx in self.bundle.transactions:
            nonce = await self.chain.get_transaction_count(
                tx.signer_address, self.target_block
            )
            if nonce > tx.nonce:
                return BundleResolution.ACCOUNT_NONCE_TOO_HIGH

        return BundleResolution.BLOCK_PASSED_WITHOUT_INCLUSION


class FlashbotsRelay:
    """Client for bundle signing, simulation, submission and relay stats."""

    def __init__(
        self,
        chain: ChainProvider,
        auth_signer: LocalAccount,
        relay_url: str,
        timeout_sec: float = 10.0,
        poll_interval: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.chain = chain
        self.auth_signer = auth_signer
        self.relay_url = relay_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self.poll_interval = poll_interval
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> "FlashbotsRelay":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _signature_header(self, body: str) -> str:
        message = encode_defunct(text=Web3.to_hex(Web3.keccak(text=body)))
        signed = self.auth_signer.sign_message(message)
        return f"{self.auth_signer.address}:{Web3.to_hex(signed.signature)}"

    async def _request(self, method: str, params: List[Any]) -> Dict[str, Any]:
        """
        POST one JSON-RPC request and return the decoded response object.

        JSON-RPC level errors are returned to the caller untouched; transport
        failures and undecodable bodies raise RelayError.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

        body = json.dumps(
            {
                "jsonrpc": "2.0",
                "id": next(self._request_ids),
                "method": method,
                "params": params,
            }
        )
        headers = {
            "Content-Type": "application/json",
            "X-Flashbots-Signature": self._signature_header(body),
        }

        try:
            async with self._session.post(
                self.relay_url, data=body, headers=headers, timeout=self.timeout
            ) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RelayError(
                f"{method} request failed: {e!r}",
                method=method,
                endpoint=self.relay_url,
            ) from e

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise RelayError(
                f"{method} returned non-JSON response (HTTP {status}): {text[:200]}",
                method=method,
                endpoint=self.relay_url,
                code=status,
            ) from e

        if not isinstance(payload, dict):
            raise RelayError(
                f"{method} returned unexpected payload: {payload!r}",
                method=method,
                endpoint=self.relay_url,
                code=status,
            )
        return payload

    @staticmethod
    def _error_message(payload: Dict[str, Any]) -> Optional[str]:
        error = payload.get("error")
        if error is None:
            return None
        if isinstance(error, dict):
            return str(error.get("message", error))
        return str(error)

    async def sign_bundle(self, entries: List[BundleEntry]) -> SignedBundle:
        """
        Sign every entry of a bundle, filling in account nonces from the chain.

        Raises:
            SigningError: If a nonce cannot be read or a transaction cannot be signed
        """
        next_nonce: Dict[str, int] = {}
        signed_txs: List[SignedBundleTransaction] = []

        for entry in entries:
            address = entry.signer.address
            try:
                if address not in next_nonce:
                    next_nonce[address] = await self.chain.get_transaction_count(
                        address, "latest"
                    )
                nonce = next_nonce[address]
                signed = entry.signer.sign_transaction(
                    entry.transaction.to_tx_params(nonce)
                )
            except Exception as e:
                raise SigningError(
                    f"Failed to sign bundle transaction for {address}: {e}",
                    details={"signer": address},
                ) from e

            next_nonce[address] = nonce + 1
            signed_txs.append(
                SignedBundleTransaction(
                    signer_address=address,
                    nonce=nonce,
                    tx_hash=to_hex_str(signed.hash),
                    raw_transaction=to_hex_str(signed.raw_transaction),
                )
            )

        return SignedBundle(transactions=signed_txs)

    async def simulate(
        self,
        bundle: SignedBundle,
        target_block: int,
        state_block: Any = "latest",
    ) -> SimulationResult:
        """
        Simulate the bundle against `target_block` with eth_callBundle.

        A JSON-RPC error is reported on the result rather than raised.

        Raises:
            RelayError: If the relay cannot be reached
            SimulationError: If the result is missing or has no per-transaction results
        """
        state = hex(state_block) if isinstance(state_block, int) else state_block
        payload = await self._request(
            "eth_callBundle",
            [
                {
                    "txs": bundle.raw_transactions,
                    "blockNumber": hex(target_block),
                    "stateBlockNumber": state,
                }
            ],
        )

        error = self._error_message(payload)
        if error is not None:
            return SimulationResult(succeeded=False, error=error, raw=payload)

        result = payload.get("result")
        if not isinstance(result, dict) or not result.get("results"):
            raise SimulationError(
                f"eth_callBundle returned no simulation results: {result!r}",
                details={"target_block": target_block},
            )
        results = result["results"]
        first_revert = next(
            (
                i
                for i, tx_result in enumerate(results)
                if tx_result.get("error") or tx_result.get("revert")
            ),
            None,
        )

        return SimulationResult(
            succeeded=first_revert is None,
            first_revert_index=first_revert,
            coinbase_diff=parse_quantity(result.get("coinbaseDiff")),
            total_gas_used=parse_quantity(result.get("totalGasUsed")),
            bundle_hash=result.get("bundleHash") or bundle_hash_of(bundle),
            results=results,
            raw=payload,
        )

    async def send_raw_bundle(
        self, bundle: SignedBundle, target_block: int
    ) -> BundleSubmission:
        """
        Submit the bundle for `target_block` with eth_sendBundle.

        Raises:
            RelayError: If the relay answers with an error
        """
        payload = await self._request(
            "eth_sendBundle",
            [{"txs": bundle.raw_transactions, "blockNumber": hex(target_block)}],
        )

        error = self._error_message(payload)
        if error is not None:
            code = payload["error"].get("code") if isinstance(payload["error"], dict) else None
            raise RelayError(
                error,
                method="eth_sendBundle",
                endpoint=self.relay_url,
                code=code,
                details=payload,
            )

        result = payload.get("result") or {}
        bundle_hash = result.get("bundleHash") or bundle_hash_of(bundle)
        return BundleSubmission(
            self.chain, bundle, target_block, bundle_hash, self.poll_interval
        )

    async def get_bundle_stats(self, bundle_hash: str, block_number: int) -> Dict[str, Any]:
        payload = await self._request(
            "flashbots_getBundleStatsV2",
            [{"bundleHash": bundle_hash, "blockNumber": hex(block_number)}],
        )
        return payload.get("result", payload)

    async def get_user_stats(self, block_number: int) -> Dict[str, Any]:
        payload = await self._request(
            "flashbots_getUserStatsV2", [{"blockNumber": hex(block_number)}]
        )
        return payload.get("result", payload)


def bundle_hash_of(bundle: SignedBundle) -> str:
    """Relay bundle hash: keccak of the concatenated transaction hashes."""
    joined = b"".join(bytes.fromhex(h[2:]) for h in bundle.tx_hashes)
    return Web3.to_hex(Web3.keccak(joined))
