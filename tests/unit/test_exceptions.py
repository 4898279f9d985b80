"""Tests for the exceptions module."""

from bundle_arb.exceptions import (
    BundleArbError,
    ChainConnectionError,
    ConfigurationError,
    EstimationError,
    RelayError,
    SigningError,
    SimulationError,
)


def test_base_exception():
    """Test the base exception class."""
    error = BundleArbError("Test error")
    assert str(error) == "Test error"
    assert error.details == {}

    error_with_details = BundleArbError("Test error", {"key": "value"})
    assert error_with_details.details == {"key": "value"}


def test_configuration_error():
    error = ConfigurationError("Config error", {"config_file": "test.yaml"})
    assert str(error) == "Config error"
    assert error.details["config_file"] == "test.yaml"
    assert isinstance(error, BundleArbError)


def test_chain_connection_error():
    error = ChainConnectionError("RPC down", endpoint="http://node:8545")
    assert error.endpoint == "http://node:8545"
    assert isinstance(error, BundleArbError)


def test_estimation_error():
    """Test estimation error keeps the failing call."""
    error = EstimationError(
        "Estimate gas failure", sender="0xabc", transaction={"to": "0xdef"}
    )
    assert str(error) == "Estimate gas failure"
    assert error.sender == "0xabc"
    assert error.transaction == {"to": "0xdef"}
    assert isinstance(error, BundleArbError)


def test_relay_error():
    error = RelayError(
        "bundle rejected", method="eth_sendBundle", endpoint="https://relay", code=-32000
    )
    assert error.method == "eth_sendBundle"
    assert error.endpoint == "https://relay"
    assert error.code == -32000
    assert isinstance(error, BundleArbError)


def test_signing_and_simulation_errors():
    assert isinstance(SigningError("x"), BundleArbError)
    assert isinstance(SimulationError("x"), BundleArbError)


def test_exception_hierarchy():
    """Every error can be caught through the base class."""
    for exc in (
        ConfigurationError("t"),
        ChainConnectionError("t"),
        EstimationError("t"),
        SigningError("t"),
        SimulationError("t"),
        RelayError("t"),
    ):
        try:
            raise exc
        except BundleArbError as caught:
            assert caught is exc
