"""
Unit tests for the command line entry point.

Start-up is exercised with the chain, relay and reactor patched out so no
network access is needed.
"""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from bundle_arb import cli
from bundle_arb.config import BotContext, ConfigError
from bundle_arb.exceptions import ChainConnectionError, ConfigurationError, EstimationError
from bundle_arb.types import BaseTransaction

from .conftest import make_config


@pytest.fixture
def context(config, searcher, relay_signer):
    return BotContext(config=config, searcher=searcher, relay_signer=relay_signer)


@pytest.fixture
def quiet_startup():
    """Patch out logging setup and .env loading."""
    with patch.object(cli.logging_config, "setup"), patch.object(
        cli.logging_config, "setup_debug"
    ), patch.object(cli.logging_config, "setup_minimal"), patch.object(cli, "load_dotenv"):
        yield


class TestParseArgs:
    def test_defaults(self):
        args = cli.parse_args([])
        assert args.config is None
        assert args.max_in_flight is None
        assert not args.verbose

    def test_verbose_and_quiet_are_exclusive(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["-v", "-q"])


class TestApplyOverrides:
    def test_overrides(self):
        config = make_config()
        args = cli.parse_args(
            ["--relay-url", "http://relay.local", "--max-in-flight", "0", "--min-profit-eth", "0.05"]
        )

        cli.apply_overrides(config, args)

        assert config.relay_url == "http://relay.local"
        assert config.max_in_flight == 0
        assert config.min_coinbase_diff_wei == 50_000_000_000_000_000

    def test_min_profit_converted_to_exact_wei(self):
        config = make_config()

        cli.apply_overrides(config, cli.parse_args(["--min-profit-eth", "0.07"]))

        assert config.min_coinbase_diff_wei == 70_000_000_000_000_000

    def test_negative_in_flight_rejected(self):
        with pytest.raises(ConfigurationError):
            cli.apply_overrides(make_config(), cli.parse_args(["--max-in-flight", "-1"]))


class TestRunSearcher:
    @pytest.mark.asyncio
    async def test_estimation_failure_exits_nonzero(self, context):
        builder = Mock()
        builder.build_base_transaction.return_value = BaseTransaction("0x01", "0x", 1, 1)
        builder.estimate_and_size = AsyncMock(side_effect=EstimationError("execution reverted"))

        with patch.object(cli, "TransactionBuilder", return_value=builder), patch.object(
            cli, "FlashbotsRelay"
        ) as relay_cls:
            status = await cli.run_searcher(context, Mock())

        assert status == 1
        relay_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_inclusion_exits_zero(self, context):
        base_tx = BaseTransaction("0x01", "0x", 1, 1)
        builder = Mock()
        builder.build_base_transaction.return_value = base_tx
        builder.estimate_and_size = AsyncMock(return_value=base_tx.with_gas_limit(600_000))

        relay_cls = MagicMock()
        relay_cls.return_value.__aenter__.return_value = Mock()
        reactor = Mock()
        reactor.run = AsyncMock(return_value=101)

        with patch.object(cli, "TransactionBuilder", return_value=builder), patch.object(
            cli, "FlashbotsRelay", relay_cls
        ), patch.object(cli, "BlockReactor", return_value=reactor) as reactor_cls:
            status = await cli.run_searcher(context, Mock())

        assert status == 0
        sized_tx = reactor_cls.call_args.args[3]
        assert sized_tx.gas_limit == 600_000
        relay_cls.return_value.__aexit__.assert_awaited_once()


@pytest.mark.usefixtures("quiet_startup")
class TestMain:
    def test_config_error_exits_one(self):
        with patch.object(cli, "load_config", side_effect=ConfigError("missing RPC")):
            with pytest.raises(SystemExit) as exc_info:
                cli.main([])

        assert exc_info.value.code == 1

    def test_connection_error_exits_one(self, context):
        with patch.object(cli, "load_config", return_value=context.config), patch.object(
            cli, "load_accounts", return_value=context
        ), patch.object(
            cli.ChainProvider, "connect", side_effect=ChainConnectionError("down")
        ):
            with pytest.raises(SystemExit) as exc_info:
                cli.main([])

        assert exc_info.value.code == 1

    def test_successful_run_exits_zero(self, context):
        run_searcher = AsyncMock(return_value=0)
        with patch.object(cli, "load_config", return_value=context.config), patch.object(
            cli, "load_accounts", return_value=context
        ), patch.object(cli.ChainProvider, "connect", return_value=Mock()), patch.object(
            cli, "run_searcher", run_searcher
        ):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["--config", "configs/bundle_arb.yaml"])

        assert exc_info.value.code == 0
        run_searcher.assert_awaited_once()

    def test_keyboard_interrupt_exits_zero(self, context):
        with patch.object(cli, "load_config", return_value=context.config), patch.object(
            cli, "load_accounts", return_value=context
        ), patch.object(cli.ChainProvider, "connect", return_value=Mock()), patch.object(
            cli, "run_searcher", Mock(return_value=None)
        ), patch.object(cli.asyncio, "run", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                cli.main([])

        assert exc_info.value.code == 0

    def test_verbose_uses_debug_logging(self):
        with patch.object(cli, "load_config", side_effect=ConfigError("x")):
            with pytest.raises(SystemExit):
                cli.main(["-v"])

        cli.logging_config.setup_debug.assert_called_once()
