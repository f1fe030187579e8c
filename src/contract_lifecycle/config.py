"""Configuration for contract-lifecycle library."""

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, TypeVar

from .constants import (
    DEFAULT_CONFIRMATION_INTERVAL,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_DATABASE_URL,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_MULTIPLIER,
    DEFAULT_LEDGER_NAME,
    DEFAULT_NETWORK,
    DEFAULT_RECEIPT_ATTEMPTS,
    DEFAULT_RECEIPT_DELAY,
    DEFAULT_RPC_TIMEOUT,
    NETWORK_CONFIG,
)
from .exceptions import ConfigurationError

ENV_PREFIX = "CONTRACT_LIFECYCLE_"

T = TypeVar("T")


@dataclass
class NetworkSettings:
    """Connection settings for one EVM network."""

    name: str
    rpc_url: str
    chain_id: Optional[int] = None
    default_account: Optional[str] = None
    timeout: float = DEFAULT_RPC_TIMEOUT


@dataclass
class GasSettings:
    default_limit: int = DEFAULT_GAS_LIMIT
    multiplier: float = DEFAULT_GAS_MULTIPLIER


@dataclass
class DeploymentSettings:
    receipt_attempts: int = DEFAULT_RECEIPT_ATTEMPTS
    receipt_delay: float = DEFAULT_RECEIPT_DELAY
    confirmation_interval: float = DEFAULT_CONFIRMATION_INTERVAL
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT


@dataclass
class LifecycleConfig:
    """Top-level configuration passed explicitly to registries and orchestrators."""

    default_network: str = DEFAULT_NETWORK
    networks: Dict[str, NetworkSettings] = field(default_factory=dict)
    gas: GasSettings = field(default_factory=GasSettings)
    deployment: DeploymentSettings = field(default_factory=DeploymentSettings)
    artifacts_dir: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    ledger_name: str = DEFAULT_LEDGER_NAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LifecycleConfig":
        """
        Build configuration from environment variables.

        Networks from NETWORK_CONFIG are included when their RPC URL variable
        (e.g. $SEP_RPC_URL) is set, or when they define a default URL.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        default_account = env.get(f"{ENV_PREFIX}DEFAULT_ACCOUNT")
        timeout = _parse(env, "RPC_TIMEOUT", float, DEFAULT_RPC_TIMEOUT)

        networks: Dict[str, NetworkSettings] = {}
        for name, network_config in NETWORK_CONFIG.items():
            rpc_url = env.get(network_config["default_rpc_env"]) or network_config.get(
                "default_rpc_url"
            )
            if rpc_url is None:
                continue
            networks[name] = NetworkSettings(
                name=name,
                rpc_url=rpc_url,
                chain_id=network_config["chain_id"],
                default_account=default_account,
                timeout=timeout,
            )

        return cls(
            default_network=env.get(f"{ENV_PREFIX}NETWORK", DEFAULT_NETWORK),
            networks=networks,
            gas=GasSettings(
                default_limit=_parse(env, "GAS_LIMIT", int, DEFAULT_GAS_LIMIT),
                multiplier=_parse(env, "GAS_MULTIPLIER", float, DEFAULT_GAS_MULTIPLIER),
            ),
            deployment=DeploymentSettings(
                receipt_attempts=_parse(env, "RECEIPT_ATTEMPTS", int, DEFAULT_RECEIPT_ATTEMPTS),
                receipt_delay=_parse(env, "RECEIPT_DELAY", float, DEFAULT_RECEIPT_DELAY),
                confirmation_interval=_parse(
                    env, "CONFIRMATION_INTERVAL", float, DEFAULT_CONFIRMATION_INTERVAL
                ),
                confirmation_timeout=_parse(
                    env, "CONFIRMATION_TIMEOUT", float, DEFAULT_CONFIRMATION_TIMEOUT
                ),
            ),
            artifacts_dir=env.get(f"{ENV_PREFIX}ARTIFACTS_DIR"),
            database_url=env.get(f"{ENV_PREFIX}DATABASE_URL", DEFAULT_DATABASE_URL),
            ledger_name=env.get(f"{ENV_PREFIX}LEDGER_NAME", DEFAULT_LEDGER_NAME),
        )

    def network(self, name: Optional[str] = None) -> NetworkSettings:
        """
        Get settings for a network (defaults to default_network).

        Raises:
            ConfigurationError: If the network has no settings
        """
        name = name or self.default_network
        if name not in self.networks:
            raise ConfigurationError(f"Network '{name}' is not configured")
        return self.networks[name]


def _parse(env: Mapping[str, str], key: str, cast: Callable[[str], T], default: T) -> T:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {ENV_PREFIX}{key}: {raw!r}") from e
