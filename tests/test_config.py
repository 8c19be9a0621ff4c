"""Tests for settings loading and engine configuration."""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from swapsolver.config import USDT_ON_ETH, USDT_ON_TRON, Settings
from swapsolver.engine.processor import EngineConfig, SwapEngine
from swapsolver.ports.base import PortConfigurationError
from swapsolver.ports.dry_run import DryRunIntentRelay
from swapsolver.ports.factory import build_ports
from swapsolver.ports.relay import IntentRelayClient


class TestSettings:
    """Environment-driven configuration."""

    def test_defaults(self):
        settings = Settings()

        assert settings.dry_run is True
        assert settings.max_concurrent_per_state == 50
        assert settings.batch_size == 100
        assert settings.max_retries == 3
        assert settings.fee_percentage == Decimal("0.1")
        pairs = settings.token_pairs()
        assert len(pairs) == 1
        assert pairs[0].token_in == USDT_ON_ETH
        assert pairs[0].token_out == USDT_ON_TRON
        assert pairs[0].min_amount == 5_000_000

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "5")
        monkeypatch.setenv("FEE_PERCENTAGE", "0.05")
        monkeypatch.setenv(
            "SUPPORTED_PAIRS",
            json.dumps([{"token_in": "a", "token_out": "b", "min_amount": 1, "max_amount": 100}]),
        )

        settings = Settings()

        assert settings.max_retries == 5
        assert settings.fee_percentage == Decimal("0.05")
        pair = settings.token_pairs()[0]
        assert (pair.token_in, pair.token_out, pair.min_amount, pair.max_amount) == ("a", "b", 1, 100)

    @pytest.mark.parametrize(
        "pair",
        [
            {"token_in": "a", "token_out": "b"},
            {"token_out": "b", "min_amount": 1},
            {"token_in": "a", "token_out": "b", "min_amount": -1},
            {"token_in": "a", "token_out": "b", "min_amount": 10, "max_amount": 5},
            {"token_in": "", "token_out": "b", "min_amount": 1},
        ],
    )
    def test_malformed_pair_rejected_on_load(self, monkeypatch, pair):
        monkeypatch.setenv("SUPPORTED_PAIRS", json.dumps([pair]))

        with pytest.raises(ValidationError):
            Settings()

    @pytest.mark.parametrize(
        "name,value",
        [
            ("MAX_CONCURRENT_PER_STATE", "0"),
            ("BATCH_SIZE", "0"),
            ("PROCESSING_INTERVAL_SECONDS", "0"),
            ("HANDLER_TIMEOUT_SECONDS", "-1"),
            ("MAX_RETRIES", "-1"),
        ],
    )
    def test_non_positive_engine_limits_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Settings()

    def test_engine_config_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            EngineConfig(max_concurrent_per_state=0)

    def test_safe_dict_redacts_key(self):
        assert Settings().get_safe_dict()["relay"]["api_key"] == "(not set)"
        assert Settings(intent_relay_api_key="k").get_safe_dict()["relay"]["api_key"] == "***"

    def test_engine_config_from_settings(self):
        config = EngineConfig.from_settings(Settings(batch_size=7, handler_timeout_seconds=2.5))

        assert config.batch_size == 7
        assert config.handler_timeout_seconds == 2.5
        assert len(config.supported_pairs) == 1


class TestPortWiring:
    """Choosing collaborators for dry-run and live mode."""

    def test_dry_run_uses_simulated_ports(self):
        ports = build_ports(Settings(dry_run=True))

        assert ports.exchange.name == "dry_run"
        assert isinstance(ports.intents, DryRunIntentRelay)

    def test_live_mode_requires_vault_and_exchange(self):
        with pytest.raises(PortConfigurationError):
            build_ports(Settings(dry_run=False))

    def test_live_mode_with_injected_adapters(self):
        dry = build_ports(Settings(dry_run=True))

        ports = build_ports(Settings(dry_run=False), vault=dry.vault, exchange=dry.exchange)

        assert isinstance(ports.intents, IntentRelayClient)
        assert ports.vault is dry.vault

    def test_engine_from_settings(self):
        engine = SwapEngine.from_settings(Settings(max_retries=1))

        assert engine.policy.max_retries == 1
        assert engine.registry.missing_states() == []
