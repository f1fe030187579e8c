"""Proxy-based upgrades and rollbacks of deployed contracts."""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .constants import PROXY_SUFFIX
from .deployer import DeploymentOrchestrator
from .exceptions import (
    DeploymentTimedOut,
    LifecycleError,
    NotUpgradeable,
    RollbackTargetNotFound,
    UnknownMigration,
)
from .interactor import ContractInteractor
from .models import ContractRecord, TransactionRecord
from .store import ContractStore
from .types import (
    ContractStatus,
    DeploymentRequest,
    RollbackResult,
    UpgradeableDeployment,
    UpgradeResult,
)

logger = logging.getLogger(__name__)

UPGRADE_METHOD = "upgradeTo"
ROLLBACK_METHOD = "rollback"

MigrationHook = Callable[[ContractRecord, ContractRecord, Any], None]


class UpgradeOrchestrator:
    """
    Upgrade and rollback state machine over proxy-fronted ContractRecords.

    Each operation runs inside a single ContractStore transaction, so a
    failed remote call leaves no partial records behind. Nothing is retried.
    """

    def __init__(
        self,
        deployer: DeploymentOrchestrator,
        interactor: ContractInteractor,
        store: ContractStore,
        migrations: Optional[Mapping[str, MigrationHook]] = None,
    ):
        self.deployer = deployer
        self.interactor = interactor
        self.store = store
        self.migrations: Dict[str, MigrationHook] = dict(migrations or {})

    @property
    def driver(self):
        return self.deployer.driver

    def upgrade(
        self,
        old: ContractRecord,
        new_version: str,
        sender: Optional[str] = None,
        preserve_state: bool = True,
        migration: Optional[str] = None,
        abi: Optional[List[Dict[str, Any]]] = None,
        bytecode: Optional[str] = None,
        source_code: Optional[str] = None,
        source_file: Optional[str] = None,
        constructor_args: Sequence[Any] = (),
    ) -> UpgradeResult:
        """
        Deploy a new implementation and point the proxy at it.

        Args:
            old: Current implementation record
            new_version: Version string of the new implementation
            sender: Sender for deployment and proxy calls
            preserve_state: Call the proxy's upgradeTo() with the new address
            migration: Name of a registered migration hook to run afterwards
            abi, bytecode, source_code, source_file: Artifacts of the new
                implementation, resolved as in DeploymentOrchestrator.deploy()
            constructor_args: Constructor arguments of the new implementation

        Returns:
            UpgradeResult with both records and the upgradeTo TransactionRecord

        Raises:
            NotUpgradeable: If ``old`` is not upgradeable (nothing is persisted)
            UnknownMigration: If ``migration`` is not registered
            ProxyNotFound: If state must be preserved but ``old`` has no proxy
        """
        if not old.is_upgradeable:
            raise NotUpgradeable(f"Contract '{old.name}' {old.version} is not upgradeable")

        hook = None
        if migration is not None:
            if migration not in self.migrations:
                raise UnknownMigration(f"Migration '{migration}' is not registered")
            hook = self.migrations[migration]

        transaction = None

        with self.store.transaction():
            outcome = self.deployer.deploy(
                DeploymentRequest(
                    name=old.name,
                    version=new_version,
                    network=old.network,
                    abi=abi,
                    bytecode=bytecode,
                    source_code=source_code,
                    source_file=source_file,
                    constructor_args=list(constructor_args),
                    sender=sender,
                    metadata={"upgraded_from": old.version},
                )
            )
            new = outcome.contract

            fields: Dict[str, Any] = {"is_upgradeable": True}
            if old.proxy_contract_id is not None:
                fields["proxy_contract_id"] = old.proxy_contract_id
            self.store.update_contract(new, **fields)

            if preserve_state:
                proxy = self.store.get_proxy(old)
                transaction = self._repoint(proxy, new, sender)

            if hook is not None:
                logger.info("Running migration %s for %s", migration, old.name)
                hook(old, new, self.driver)

            self.store.update_contract(old, status=ContractStatus.UPGRADED)

        logger.info(
            "Contract %s upgraded from %s to %s on %s",
            old.name,
            old.version,
            new_version,
            old.network,
        )

        return UpgradeResult(
            old_contract=old,
            new_contract=new,
            proxy_updated=transaction is not None,
            transaction=transaction,
        )

    def rollback(
        self,
        current: ContractRecord,
        target_version: Optional[str] = None,
        sender: Optional[str] = None,
    ) -> RollbackResult:
        """
        Point the proxy back at an earlier implementation.

        Args:
            current: Implementation being rolled back
            target_version: Version to restore; defaults to the most recently
                            created earlier version

        Returns:
            RollbackResult whose transaction has method_name "rollback" and a
            rollback_id referencing the upgradeTo call that installed ``current``

        Raises:
            NotUpgradeable: If ``current`` is not upgradeable
            RollbackTargetNotFound: If no earlier version exists
            ProxyNotFound: If ``current`` has no proxy
        """
        if not current.is_upgradeable:
            raise NotUpgradeable(
                f"Contract '{current.name}' {current.version} is not upgradeable"
            )

        restored = self.store.previous_version(current, target_version)
        if restored is None:
            wanted = target_version or "a previous version"
            raise RollbackTargetNotFound(
                f"No rollback target ({wanted}) for '{current.name}' on {current.network}"
            )

        with self.store.transaction():
            proxy = self.store.get_proxy(current)
            reverted = self._upgrade_transaction(proxy, current)

            transaction = self._repoint(proxy, restored, sender)
            self.store.update_transaction(
                transaction,
                method_name=ROLLBACK_METHOD,
                parameters={
                    "implementation": restored.address,
                    "target_version": restored.version,
                },
                rollback_id=reverted.id if reverted is not None else None,
            )

            self.store.update_contract(current, status=ContractStatus.DEPRECATED)
            self.store.update_contract(restored, status=ContractStatus.DEPLOYED)

        logger.info(
            "Contract %s rolled back from %s to %s on %s",
            current.name,
            current.version,
            restored.version,
            current.network,
        )

        return RollbackResult(
            current_contract=current, restored_contract=restored, transaction=transaction
        )

    def create_upgradeable_contract(self, request: DeploymentRequest) -> UpgradeableDeployment:
        """
        Deploy an implementation behind a freshly deployed proxy.

        The proxy uses the driver's proxy artifacts, is named after the
        implementation with a "_Proxy" suffix and receives the implementation
        address as its constructor argument.

        Raises:
            UnsupportedOperation: If the backend has no proxy contract
            DeploymentTimedOut: If the implementation address was never observed
        """
        proxy_artifacts = self.driver.proxy_artifacts()

        with self.store.transaction():
            implementation = self.deployer.deploy(request).contract
            if implementation.address is None:
                raise DeploymentTimedOut(
                    f"Implementation '{request.name}' has no address; cannot deploy its proxy"
                )

            proxy = self.deployer.deploy(
                DeploymentRequest(
                    name=request.name + PROXY_SUFFIX,
                    version=request.version,
                    network=request.network,
                    abi=proxy_artifacts.abi,
                    bytecode=proxy_artifacts.bytecode,
                    constructor_args=[implementation.address],
                    sender=request.sender,
                )
            ).contract

            self.store.update_contract(implementation, is_upgradeable=True)
            self.store.update_contract(proxy, is_upgradeable=True)
            self.store.link_proxy(implementation, proxy)

        logger.info(
            "Upgradeable contract %s deployed: implementation %s, proxy %s",
            request.name,
            implementation.address,
            proxy.address,
        )

        return UpgradeableDeployment(proxy=proxy, implementation=implementation)

    def history(self, name: str, network: str) -> List[ContractRecord]:
        """All versions of a contract on a network with their status, oldest first."""
        return self.store.history(name, network)

    def _repoint(
        self, proxy: ContractRecord, implementation: ContractRecord, sender: Optional[str]
    ) -> TransactionRecord:
        if implementation.address is None:
            raise DeploymentTimedOut(
                f"Implementation '{implementation.name}' {implementation.version} has no address"
            )

        try:
            transaction = self.interactor.transact(
                proxy, UPGRADE_METHOD, [implementation.address], sender=sender, wait=True
            )
        except LifecycleError as e:
            logger.error(
                "Proxy %s repoint to %s failed: %s", proxy.address, implementation.address, e
            )
            raise

        self.store.update_contract(proxy, implementation_of=implementation.id)
        logger.info("Proxy %s now points to %s", proxy.address, implementation.address)
        return transaction

    def _upgrade_transaction(
        self, proxy: ContractRecord, implementation: ContractRecord
    ) -> Optional[TransactionRecord]:
        """Most recent upgradeTo call on ``proxy`` that installed ``implementation``."""
        for transaction in reversed(self.store.transactions_for(proxy.id)):
            if transaction.method_name != UPGRADE_METHOD:
                continue
            parameters = transaction.parameters or []
            if parameters and str(parameters[0]).lower() == str(implementation.address).lower():
                return transaction
        return None
