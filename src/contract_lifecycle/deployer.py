"""Contract deployment orchestration for contract-lifecycle library."""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from .abi import encode_constructor, find_constructor, load_abi
from .compiler import ContractCompiler
from .config import LifecycleConfig
from .constants import PREVIEW_BYTECODE_SIZE, ZERO_ADDRESS
from .drivers import ChainDriver
from .exceptions import ArtifactsUnavailable, DeploymentTimedOut, LifecycleError
from .models import ContractRecord
from .receipts import receipt_fields, wait_for_receipt
from .store import ContractStore
from .types import (
    Artifacts,
    Capability,
    ContractStatus,
    DeploymentOutcome,
    DeploymentPreview,
    DeploymentRequest,
    DeploymentResult,
    Receipt,
    TransactionStatus,
)
from .utils import strip_hex_prefix

logger = logging.getLogger(__name__)


class DeploymentOrchestrator:
    """
    Deploys contracts through a driver and records the outcome.

    Artifacts are resolved from the request, then from stored artifacts, then
    by compiling supplied source. Gas estimation failures fall back to the
    configured default limit; every other failure propagates.
    """

    def __init__(
        self,
        driver: ChainDriver,
        store: ContractStore,
        compiler: Optional[ContractCompiler] = None,
        config: Optional[LifecycleConfig] = None,
    ):
        self.driver = driver
        self.store = store
        self.compiler = compiler
        self.config = config or LifecycleConfig()

    def deploy(self, request: DeploymentRequest) -> Union[DeploymentOutcome, DeploymentPreview]:
        """
        Deploy a contract, or preview its cost when ``request.preview`` is set.

        Args:
            request: Deployment parameters

        Returns:
            DeploymentOutcome with the persisted ContractRecord, or a
            DeploymentPreview in preview mode (nothing submitted or persisted)

        Raises:
            ArtifactsUnavailable: If no ABI/bytecode can be resolved (not in preview)
            TransportError: If submission fails (a failed record is persisted first)
        """
        network = request.network or self.driver.network

        try:
            artifacts = self.resolve_artifacts(request)
        except ArtifactsUnavailable:
            if not request.preview:
                raise
            artifacts = Artifacts(abi=[], bytecode="0x" + "00" * PREVIEW_BYTECODE_SIZE)

        gas_limit = request.gas_limit
        if gas_limit is None:
            gas_limit = self.estimate_deployment_gas(
                artifacts.bytecode, artifacts.abi, request.constructor_args, request.sender
            )
            logger.info("Gas estimated for deployment of %s: %d", request.name, gas_limit)

        if request.preview:
            return self.preview_deployment(
                request.name,
                network,
                artifacts.bytecode,
                gas_limit,
                constructor_args=request.constructor_args,
                sender=request.sender,
            )

        try:
            result = self.driver.deploy(
                artifacts.bytecode,
                artifacts.abi,
                request.constructor_args,
                request.sender,
                gas_limit,
            )
        except LifecycleError as e:
            logger.error("Deployment of %s on %s failed: %s", request.name, network, e)
            with self.store.transaction():
                self._store_contract(
                    request, network, artifacts, None, status=ContractStatus.FAILED, error=str(e)
                )
            raise

        with self.store.transaction():
            contract = self._store_deployment(request, network, artifacts, result)

        logger.info(
            "Contract %s %s deployed at %s on %s",
            request.name,
            request.version,
            result.address,
            network,
        )

        return DeploymentOutcome(contract=contract, deployment=result, artifacts=artifacts)

    def resolve_artifacts(self, request: DeploymentRequest) -> Artifacts:
        """
        Resolve artifacts in priority order: explicit, stored, compiled.

        Raises:
            ArtifactsUnavailable: If none of the sources apply
        """
        if request.abi is not None and request.bytecode is not None:
            return Artifacts(abi=load_abi(request.abi), bytecode=request.bytecode)

        if self.compiler is not None:
            stored = self.compiler.load_artifacts(request.name, request.version)
            if stored is not None:
                return stored

            if request.source_code is not None:
                return self.compiler.compile(request.source_code, request.name)

            if request.source_file is not None:
                return self.compiler.compile_from_file(request.source_file, request.name)

        raise ArtifactsUnavailable(
            f"No artifacts found for contract '{request.name}'. "
            "Please provide source code, source file, or pre-compiled artifacts."
        )

    def estimate_deployment_gas(
        self,
        bytecode: str,
        abi: Any = None,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
    ) -> int:
        """
        Estimate deployment gas with the configured safety multiplier.

        Returns:
            int(estimate * multiplier), or the default gas limit if estimation fails
        """
        data = encode_constructor(constructor_args, find_constructor(load_abi(abi)), bytecode)

        try:
            estimate = self.driver.estimate_gas(
                {"from": sender or ZERO_ADDRESS, "data": "0x" + data.hex()}
            )
        except LifecycleError as e:
            logger.warning(
                "Gas estimation failed, using default %d: %s", self.config.gas.default_limit, e
            )
            return self.config.gas.default_limit

        return int(estimate * self.config.gas.multiplier)

    def preview_deployment(
        self,
        name: str,
        network: str,
        bytecode: str,
        gas_limit: Optional[int] = None,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
    ) -> DeploymentPreview:
        """Estimate deployment cost as gas price times gas limit, without submitting."""
        if gas_limit is None:
            gas_limit = self.config.gas.default_limit

        gas_price = self.driver.gas_price() if self.driver.supports(Capability.GAS) else 0

        return DeploymentPreview(
            contract_name=name,
            network=network,
            sender=sender,
            gas_limit=gas_limit,
            gas_price=gas_price,
            estimated_cost_wei=gas_price * gas_limit,
            constructor_args=list(constructor_args),
            bytecode_size=len(strip_hex_prefix(bytecode)) // 2,
        )

    def wait_for_confirmation(
        self, transaction_hash: str, timeout: Optional[float] = None
    ) -> Optional[Receipt]:
        """
        Wait until a receipt with a block number appears.

        Returns:
            Receipt, or None once the timeout (default from configuration) elapses
        """
        if timeout is None:
            timeout = self.config.deployment.confirmation_timeout
        return wait_for_receipt(
            self.driver,
            transaction_hash,
            timeout,
            self.config.deployment.confirmation_interval,
        )

    def confirm_deployment(
        self, contract: ContractRecord, timeout: Optional[float] = None
    ) -> ContractRecord:
        """
        Wait for a submitted deployment and fill in what its receipt reports.

        Raises:
            DeploymentTimedOut: If no receipt appears before the timeout
        """
        receipt = self.wait_for_confirmation(contract.transaction_hash, timeout)
        if receipt is None:
            raise DeploymentTimedOut(
                f"No receipt for deployment {contract.transaction_hash} of '{contract.name}'"
            )

        with self.store.transaction():
            self.store.update_contract(
                contract,
                address=contract.address or receipt.contract_address,
                gas_used=receipt.gas_used,
                status=ContractStatus.DEPLOYED if receipt.status else ContractStatus.FAILED,
            )
            transaction = self.store.find_transaction(contract.transaction_hash)
            if transaction is not None:
                self.store.update_transaction(transaction, **receipt_fields(receipt))

        return contract

    def _store_deployment(
        self,
        request: DeploymentRequest,
        network: str,
        artifacts: Artifacts,
        result: DeploymentResult,
    ) -> ContractRecord:
        failed = result.receipt_status is False
        status = ContractStatus.FAILED if failed else ContractStatus.DEPLOYED
        contract = self._store_contract(request, network, artifacts, result, status=status)

        if result.transaction_hash:
            fields = {"status": TransactionStatus.PENDING}
            if result.receipt_status is not None:
                fields = receipt_fields(
                    Receipt(
                        transaction_hash=result.transaction_hash,
                        block_number=result.block_number,
                        gas_used=result.gas_used,
                        status=result.receipt_status,
                    )
                )
            self.store.create_transaction(
                transaction_hash=result.transaction_hash,
                contract_id=contract.id,
                method_name="constructor",
                parameters=list(request.constructor_args),
                from_address=contract.deployer_address,
                **fields,
            )

        return contract

    def _store_contract(
        self,
        request: DeploymentRequest,
        network: str,
        artifacts: Artifacts,
        result: Optional[DeploymentResult],
        status: ContractStatus,
        error: Optional[str] = None,
    ) -> ContractRecord:
        meta = dict(request.metadata or {})
        if error is not None:
            meta["error"] = error

        return self.store.create_contract(
            name=request.name,
            version=request.version,
            type=self.driver.kind,
            address=result.address if result else None,
            network=network,
            deployer_address=request.sender or self.driver.default_account,
            abi=artifacts.abi,
            bytecode_hash=bytecode_hash(artifacts.bytecode),
            constructor_params=list(request.constructor_args),
            deployed_at=datetime.now(timezone.utc) if result else None,
            transaction_hash=result.transaction_hash if result else None,
            gas_used=result.gas_used if result else None,
            status=status,
            is_upgradeable=False,
            meta=meta or None,
        )


def bytecode_hash(bytecode: str) -> str:
    """SHA-256 over the lowercase hex bytecode without its 0x prefix."""
    return hashlib.sha256(strip_hex_prefix(bytecode).lower().encode("ascii")).hexdigest()

