"""Shared fixtures for the bundle searcher unit tests."""

import pytest
from eth_account import Account
from web3 import Web3

from bundle_arb.chain import ChainProvider
from bundle_arb.config import BotConfig
from bundle_arb.transaction import TransactionBuilder

# Well-known throwaway keys (anvil/hardhat defaults), never funded on mainnet
SEARCHER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
RELAY_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"


def make_config(**overrides) -> BotConfig:
    """BotConfig with a dummy RPC URL and the given overrides."""
    config_dict = {"rpc_url": "http://localhost:8545"}
    config_dict.update(overrides)
    return BotConfig(config_dict, environ={})


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def searcher():
    return Account.from_key(SEARCHER_KEY)


@pytest.fixture
def relay_signer():
    return Account.from_key(RELAY_KEY)


@pytest.fixture
def offline_chain():
    """Chain provider whose web3 instance is only used for ABI encoding."""
    return ChainProvider(Web3())


@pytest.fixture
def builder(offline_chain, config):
    return TransactionBuilder(offline_chain, config)
