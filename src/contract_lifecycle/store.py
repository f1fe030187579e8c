"""Persistence of contract versions and transactions over a SQLAlchemy session."""

from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, List, Optional

from sqlalchemy import and_, create_engine, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .constants import PROXY_SUFFIX
from .exceptions import InvalidProxyLink, InvalidRollbackLink, ProxyNotFound
from .models import Base, ContractRecord, TransactionRecord
from .types import ContractStatus


def create_schema(engine: Engine) -> None:
    """Create the contract and transaction tables if they don't exist."""
    Base.metadata.create_all(engine)


def connect(database_url: str) -> "ContractStore":
    """Open a ContractStore on ``database_url``, creating tables as needed."""
    engine = create_engine(database_url)
    create_schema(engine)
    return ContractStore(Session(engine))


def family_name(name: str) -> str:
    """Contract name shared by an implementation and its proxy."""
    return name[: -len(PROXY_SUFFIX)] if name.endswith(PROXY_SUFFIX) else name


def same_family(a: ContractRecord, b: ContractRecord) -> bool:
    return a.network == b.network and family_name(a.name) == family_name(b.name)


class ContractStore:
    """
    Create/find/update access to ContractRecord and TransactionRecord rows.

    Writes are flushed immediately so ids are available, but only the
    outermost transaction() scope commits. Nested scopes join the outer one,
    so a failure anywhere inside rolls back everything written in it.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["ContractStore"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.session.commit()
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

    # Contracts

    def create_contract(self, **fields: Any) -> ContractRecord:
        record = ContractRecord(**_values(fields))
        if record.proxy_contract_id is not None:
            if not record.is_upgradeable:
                raise InvalidProxyLink(
                    f"Contract '{record.name}' is not upgradeable and cannot be linked to a proxy"
                )
            self._check_proxy_link(record, record.proxy_contract_id)
        self.session.add(record)
        self.session.flush()
        return record

    def get_contract(self, contract_id: int) -> Optional[ContractRecord]:
        return self.session.get(ContractRecord, contract_id)

    def find_contract(
        self, name: str, network: Optional[str] = None, version: Optional[str] = None
    ) -> Optional[ContractRecord]:
        """Most recently created record matching name and optional network/version."""
        query = select(ContractRecord).where(ContractRecord.name == name)
        if network is not None:
            query = query.where(ContractRecord.network == network)
        if version is not None:
            query = query.where(ContractRecord.version == version)
        query = query.order_by(ContractRecord.created_at.desc(), ContractRecord.id.desc())
        return self.session.scalars(query.limit(1)).first()

    def update_contract(self, record: ContractRecord, **fields: Any) -> ContractRecord:
        fields = _values(fields)
        if fields.get("proxy_contract_id") is not None:
            if not fields.get("is_upgradeable", record.is_upgradeable):
                raise InvalidProxyLink(
                    f"Contract '{record.name}' is not upgradeable and cannot be linked to a proxy"
                )
            self._check_proxy_link(record, fields["proxy_contract_id"])
        for key, value in fields.items():
            setattr(record, key, value)
        self.session.flush()
        return record

    def history(self, name: str, network: str) -> List[ContractRecord]:
        """All versions of a contract on a network, oldest first."""
        query = (
            select(ContractRecord)
            .where(ContractRecord.name == name, ContractRecord.network == network)
            .order_by(ContractRecord.created_at, ContractRecord.id)
        )
        return list(self.session.scalars(query))

    def previous_version(
        self, current: ContractRecord, target_version: Optional[str] = None
    ) -> Optional[ContractRecord]:
        """
        Find the version a rollback should restore.

        Args:
            current: Record being rolled back
            target_version: Explicit version to restore; otherwise the most
                            recently created earlier record is used

        Returns:
            ContractRecord, or None if no candidate exists. Failed deployments
            are never candidates.
        """
        query = select(ContractRecord).where(
            ContractRecord.name == current.name,
            ContractRecord.network == current.network,
            ContractRecord.id != current.id,
            ContractRecord.status != ContractStatus.FAILED.value,
        )

        if target_version is not None:
            query = query.where(ContractRecord.version == target_version)
        else:
            query = query.where(
                or_(
                    ContractRecord.created_at < current.created_at,
                    and_(
                        ContractRecord.created_at == current.created_at,
                        ContractRecord.id < current.id,
                    ),
                )
            )

        query = query.order_by(ContractRecord.created_at.desc(), ContractRecord.id.desc())
        return self.session.scalars(query.limit(1)).first()

    def get_proxy(self, record: ContractRecord) -> ContractRecord:
        """
        Resolve the proxy fronting a record.

        Raises:
            ProxyNotFound: If the record has no proxy or the proxy row is missing
        """
        if record.proxy_contract_id is None:
            raise ProxyNotFound(f"No proxy contract found for '{record.name}'")
        proxy = self.get_contract(record.proxy_contract_id)
        if proxy is None:
            raise ProxyNotFound(
                f"Proxy contract {record.proxy_contract_id} not found in database"
            )
        return proxy

    def link_proxy(self, implementation: ContractRecord, proxy: ContractRecord) -> None:
        """
        Cross-link an implementation and the proxy in front of it.

        Raises:
            InvalidProxyLink: If either side is not upgradeable or they belong
                              to different contract families
        """
        if not (implementation.is_upgradeable and proxy.is_upgradeable):
            raise InvalidProxyLink("Only upgradeable contracts can be linked to a proxy")
        if not same_family(implementation, proxy):
            raise InvalidProxyLink(
                f"Proxy '{proxy.name}' on {proxy.network} does not front "
                f"'{implementation.name}' on {implementation.network}"
            )
        implementation.proxy_contract_id = proxy.id
        proxy.implementation_of = implementation.id
        self.session.flush()

    def _check_proxy_link(self, record: ContractRecord, proxy_id: int) -> None:
        proxy = self.get_contract(proxy_id)
        if proxy is None:
            raise ProxyNotFound(f"Proxy contract {proxy_id} not found in database")
        if not same_family(record, proxy):
            raise InvalidProxyLink(
                f"Proxy '{proxy.name}' on {proxy.network} does not front "
                f"'{record.name}' on {record.network}"
            )

    # Transactions

    def create_transaction(self, **fields: Any) -> TransactionRecord:
        record = TransactionRecord(**_values(fields))
        if record.rollback_id is not None:
            self._check_rollback_link(record.contract_id, record.rollback_id)
        self.session.add(record)
        self.session.flush()
        return record

    def find_transaction(self, transaction_hash: str) -> Optional[TransactionRecord]:
        query = select(TransactionRecord).where(
            TransactionRecord.transaction_hash == transaction_hash
        )
        return self.session.scalars(query).first()

    def update_transaction(self, record: TransactionRecord, **fields: Any) -> TransactionRecord:
        fields = _values(fields)
        if fields.get("rollback_id") is not None:
            self._check_rollback_link(record.contract_id, fields["rollback_id"])
        for key, value in fields.items():
            setattr(record, key, value)
        self.session.flush()
        return record

    def latest_transaction(
        self, contract_id: int, method_name: str
    ) -> Optional[TransactionRecord]:
        query = (
            select(TransactionRecord)
            .where(
                TransactionRecord.contract_id == contract_id,
                TransactionRecord.method_name == method_name,
            )
            .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
        )
        return self.session.scalars(query.limit(1)).first()

    def transactions_for(self, contract_id: int) -> List[TransactionRecord]:
        query = (
            select(TransactionRecord)
            .where(TransactionRecord.contract_id == contract_id)
            .order_by(TransactionRecord.created_at, TransactionRecord.id)
        )
        return list(self.session.scalars(query))

    def _check_rollback_link(self, contract_id: int, rollback_id: int) -> None:
        target = self.session.get(TransactionRecord, rollback_id)
        if target is None:
            raise InvalidRollbackLink(f"Transaction {rollback_id} not found")
        owner = self.get_contract(contract_id)
        target_owner = self.get_contract(target.contract_id)
        if owner is None or target_owner is None or not same_family(owner, target_owner):
            raise InvalidRollbackLink(
                f"Transaction {rollback_id} belongs to a different contract family"
            )


def _values(fields: dict) -> dict:
    return {k: v.value if isinstance(v, Enum) else v for k, v in fields.items()}
