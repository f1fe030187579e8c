"""SQLAlchemy models for contract versions and their on-chain interactions."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from .constants import DEFAULT_VERSION
from .types import ContractStatus, TransactionStatus

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractRecord(Base):
    __tablename__ = "blockchain_contracts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    version = Column(String, nullable=False, default=DEFAULT_VERSION)
    type = Column(String, nullable=False, default="evm")
    address = Column(String, index=True)
    network = Column(String, nullable=False, index=True)
    deployer_address = Column(String)
    abi = Column(JSON)
    bytecode_hash = Column(String)
    constructor_params = Column(JSON)
    deployed_at = Column(DateTime(timezone=True))
    transaction_hash = Column(String, index=True)
    gas_used = Column(BigInteger)
    status = Column(String, nullable=False, default=ContractStatus.DEPLOYED.value)
    is_upgradeable = Column(Boolean, nullable=False, default=False)
    # Peer links by id; neither side owns the other
    proxy_contract_id = Column(Integer, ForeignKey("blockchain_contracts.id", ondelete="SET NULL"))
    implementation_of = Column(Integer, ForeignKey("blockchain_contracts.id", ondelete="SET NULL"))
    meta = Column("metadata", JSON)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_blockchain_contracts_name_version", "name", "version"),
        Index("ix_blockchain_contracts_network_status", "network", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ContractRecord id={self.id} {self.name}@{self.version} "
            f"network={self.network} status={self.status}>"
        )


class TransactionRecord(Base):
    __tablename__ = "blockchain_transactions"

    id = Column(Integer, primary_key=True)
    transaction_hash = Column(String, unique=True, nullable=False)
    contract_id = Column(
        Integer, ForeignKey("blockchain_contracts.id", ondelete="CASCADE"), nullable=False
    )
    method_name = Column(String, nullable=False)
    parameters = Column(JSON)
    return_values = Column(JSON)
    gas_used = Column(BigInteger)
    gas_price = Column(BigInteger)
    from_address = Column(String)
    to_address = Column(String)
    status = Column(String, nullable=False, default=TransactionStatus.PENDING.value)
    error_message = Column(Text)
    rollback_id = Column(Integer, ForeignKey("blockchain_transactions.id", ondelete="SET NULL"))
    block_number = Column(BigInteger, index=True)
    confirmed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_blockchain_transactions_contract_method", "contract_id", "method_name"),
        Index("ix_blockchain_transactions_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<TransactionRecord id={self.id} {self.method_name} "
            f"hash={self.transaction_hash} status={self.status}>"
        )
