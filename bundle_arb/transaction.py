"""
Transaction builder for the flash loan arbitrage call.

Builds the unpriced template once at start-up, sizes its gas limit from a
pre-flight estimate, then prices a fresh EIP-1559 copy for every block.
"""

import logging

from .abi import BUNDLE_EXECUTOR_ABI
from .chain import ChainProvider
from .config import BotConfig
from .exceptions import EstimationError
from .fees import max_fee_per_gas
from .types import BaseTransaction, FeeParameters, Opportunity, PricedTransaction

logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Builds, sizes and prices the arbitrage contract call."""

    def __init__(self, chain: ChainProvider, config: BotConfig):
        self.chain = chain
        self.config = config
        self.contract = chain.web3.eth.contract(
            address=config.contract_address, abi=BUNDLE_EXECUTOR_ABI
        )

    def build_base_transaction(self, opportunity: Opportunity) -> BaseTransaction:
        """
        ABI-encode the flashloan call for the configured route.

        The legacy gas price and gas limit attached here are placeholders for
        the gas estimate only; they never reach the relay.
        """
        data = self.contract.encode_abi(
            "flashloan",
            args=[
                opportunity.token1,
                opportunity.token2,
                opportunity.borrow_amount,
                opportunity.router1,
                opportunity.router2,
            ],
        )
        return BaseTransaction(
            to=self.contract.address,
            data=data,
            gas_price=self.config.legacy_gas_price,
            gas_limit=self.config.initial_gas_limit,
        )

    async def estimate_and_size(
        self, base_tx: BaseTransaction, sender_address: str
    ) -> BaseTransaction:
        """
        Estimate gas as if sent from `sender_address` and size the gas limit.

        Returns:
            A copy of `base_tx` with gas_limit = estimate * gas_limit_multiplier

        Raises:
            EstimationError: If the provider rejects the estimate (e.g. the
                call reverts) or returns nothing
        """
        params = base_tx.to_estimate_params(sender_address)
        try:
            estimate = await self.chain.estimate_gas(params)
        except Exception as e:
            raise EstimationError(
                f"Estimate gas failure: {e}",
                sender=sender_address,
                transaction=params,
            ) from e

        if estimate is None or int(estimate) <= 0:
            raise EstimationError(
                f"Estimate gas returned no result: {estimate!r}",
                sender=sender_address,
                transaction=params,
            )

        estimate = int(estimate)
        if estimate > self.config.large_estimate_threshold:
            logger.warning(
                f"EstimateGas succeeded, but suspiciously large: {estimate}"
            )

        gas_limit = estimate * self.config.gas_limit_multiplier
        logger.info(f"Gas estimate {estimate:,} -> gas limit {gas_limit:,}")
        return base_tx.with_gas_limit(gas_limit)

    def price_for_block(
        self, base_tx: BaseTransaction, fee_parameters: FeeParameters
    ) -> PricedTransaction:
        """Price the template as an EIP-1559 transaction for one block."""
        return PricedTransaction(
            to=base_tx.to,
            data=base_tx.data,
            max_fee_per_gas=max_fee_per_gas(fee_parameters),
            max_priority_fee_per_gas=fee_parameters.priority_fee,
            gas_limit=base_tx.gas_limit,
            chain_id=self.config.chain_id,
        )
