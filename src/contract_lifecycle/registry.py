"""Explicit registry of ledger drivers, built once and passed to orchestrators."""

from typing import Dict, List, Optional

from .config import LifecycleConfig
from .drivers import ChainDriver, EvmDriver, LedgerDbDriver, LedgerSession
from .exceptions import DriverNotFound
from .rpc import EthereumRpcClient

LEDGER_DRIVER_NAME = "ledger-db"


class DriverRegistry:
    """Named ChainDriver instances with one default."""

    def __init__(self):
        self._drivers: Dict[str, ChainDriver] = {}
        self._default: Optional[str] = None

    @classmethod
    def from_config(
        cls, config: LifecycleConfig, ledger_session: Optional[LedgerSession] = None
    ) -> "DriverRegistry":
        """
        Build one EvmDriver per configured network.

        Args:
            config: Lifecycle configuration
            ledger_session: When given, a LedgerDbDriver is registered as "ledger-db"

        Returns:
            Registry whose default is config.default_network when configured
        """
        registry = cls()

        for name, settings in config.networks.items():
            client = EthereumRpcClient(settings.rpc_url, timeout=settings.timeout)
            registry.register(
                name,
                EvmDriver(
                    client,
                    network=name,
                    default_account=settings.default_account,
                    default_gas_limit=config.gas.default_limit,
                    receipt_attempts=config.deployment.receipt_attempts,
                    receipt_delay=config.deployment.receipt_delay,
                ),
                default=name == config.default_network,
            )

        if ledger_session is not None:
            registry.register(
                LEDGER_DRIVER_NAME, LedgerDbDriver(ledger_session, config.ledger_name)
            )

        return registry

    def register(self, name: str, driver: ChainDriver, default: bool = False) -> None:
        self._drivers[name] = driver
        if default or self._default is None:
            self._default = name

    def get(self, name: Optional[str] = None) -> ChainDriver:
        """
        Look up a driver by name (defaults to the default driver).

        Raises:
            DriverNotFound: If no driver is registered under that name
        """
        name = name or self._default
        if name is None or name not in self._drivers:
            raise DriverNotFound(f"Driver '{name}' not registered")
        return self._drivers[name]

    def names(self) -> List[str]:
        return list(self._drivers.keys())

    @property
    def default_name(self) -> Optional[str]:
        return self._default

    def __contains__(self, name: str) -> bool:
        return name in self._drivers
