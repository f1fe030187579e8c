"""Unit tests for ContractStore persistence and invariants."""

import pytest

from contract_lifecycle.exceptions import InvalidProxyLink, InvalidRollbackLink, ProxyNotFound
from contract_lifecycle.models import ContractRecord, TransactionRecord
from contract_lifecycle.store import connect, family_name
from contract_lifecycle.types import ContractStatus, TransactionStatus


def add_contract(store, name="Token", version="1.0.0", network="local", **fields):
    fields.setdefault("address", "0x" + "01" * 20)
    return store.create_contract(name=name, version=version, network=network, **fields)


class TestContracts:
    """Test contract record creation and lookup."""

    def test_create_assigns_id_and_defaults(self, store):
        record = add_contract(store, status=ContractStatus.DEPLOYED)

        assert record.id is not None
        assert record.status == "deployed"
        assert record.is_upgradeable is False
        assert record.created_at is not None

    def test_find_latest(self, store):
        add_contract(store, version="1.0.0")
        latest = add_contract(store, version="2.0.0")

        assert store.find_contract("Token", "local") is latest
        assert store.find_contract("Token", "local", "1.0.0").version == "1.0.0"
        assert store.find_contract("Token", "gnosis") is None

    def test_history_ordered_by_creation(self, store):
        add_contract(store, version="1.0.0")
        add_contract(store, version="2.0.0")
        add_contract(store, version="1.5.0")
        add_contract(store, name="Other")

        assert [r.version for r in store.history("Token", "local")] == ["1.0.0", "2.0.0", "1.5.0"]

    def test_update(self, store):
        record = add_contract(store)

        store.update_contract(record, status=ContractStatus.UPGRADED, gas_used=21000)

        assert record.status == "upgraded"
        assert record.gas_used == 21000


class TestPreviousVersion:
    """Test rollback target selection."""

    def test_most_recent_earlier_record(self, store):
        add_contract(store, version="1.0.0")
        middle = add_contract(store, version="2.0.0")
        current = add_contract(store, version="3.0.0")

        assert store.previous_version(current) is middle

    def test_explicit_version(self, store):
        first = add_contract(store, version="1.0.0")
        add_contract(store, version="2.0.0")
        current = add_contract(store, version="3.0.0")

        assert store.previous_version(current, "1.0.0") is first

    def test_failed_records_skipped(self, store):
        first = add_contract(store, version="1.0.0")
        add_contract(store, version="2.0.0", status=ContractStatus.FAILED)
        current = add_contract(store, version="3.0.0")

        assert store.previous_version(current) is first

    def test_none_without_history(self, store):
        current = add_contract(store)

        assert store.previous_version(current) is None
        assert store.previous_version(current, "9.9.9") is None

    def test_other_network_ignored(self, store):
        add_contract(store, network="gnosis")
        current = add_contract(store, network="local")

        assert store.previous_version(current) is None


class TestProxyLinks:
    """Test the proxy link invariants."""

    def test_family_name(self):
        assert family_name("Token_Proxy") == "Token"
        assert family_name("Token") == "Token"

    def test_link_proxy(self, store):
        implementation = add_contract(store, is_upgradeable=True)
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)

        store.link_proxy(implementation, proxy)

        assert implementation.proxy_contract_id == proxy.id
        assert proxy.implementation_of == implementation.id
        assert store.get_proxy(implementation) is proxy

    def test_non_upgradeable_cannot_link(self, store):
        implementation = add_contract(store, is_upgradeable=False)
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)

        with pytest.raises(InvalidProxyLink):
            store.link_proxy(implementation, proxy)
        with pytest.raises(InvalidProxyLink):
            store.update_contract(implementation, proxy_contract_id=proxy.id)

    def test_create_with_proxy_requires_upgradeable(self, store):
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)

        with pytest.raises(InvalidProxyLink):
            add_contract(store, version="2.0.0", proxy_contract_id=proxy.id)

    def test_update_sets_upgradeable_and_link_together(self, store):
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)
        implementation = add_contract(store)

        store.update_contract(implementation, is_upgradeable=True, proxy_contract_id=proxy.id)

        assert implementation.proxy_contract_id == proxy.id

    def test_create_linked_implementation(self, store):
        """Test that a new upgradeable version can be created already linked."""
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)

        record = add_contract(
            store, version="2.0.0", is_upgradeable=True, proxy_contract_id=proxy.id
        )

        assert record.proxy_contract_id == proxy.id
        assert store.get_proxy(record) is proxy

    def test_link_then_relink_new_version(self, store):
        implementation = add_contract(store, is_upgradeable=True)
        proxy = add_contract(store, name="Token_Proxy", is_upgradeable=True)
        store.link_proxy(implementation, proxy)
        upgraded = add_contract(store, version="2.0.0")

        store.update_contract(upgraded, is_upgradeable=True, proxy_contract_id=proxy.id)

        assert store.get_proxy(upgraded) is proxy
        assert proxy.implementation_of == implementation.id

    def test_other_family_rejected(self, store):
        implementation = add_contract(store, is_upgradeable=True)
        proxy = add_contract(store, name="Vault_Proxy", is_upgradeable=True)

        with pytest.raises(InvalidProxyLink):
            store.link_proxy(implementation, proxy)

    def test_other_network_rejected(self, store):
        implementation = add_contract(store, is_upgradeable=True)
        proxy = add_contract(store, name="Token_Proxy", network="gnosis", is_upgradeable=True)

        with pytest.raises(InvalidProxyLink):
            store.update_contract(implementation, proxy_contract_id=proxy.id)

    def test_missing_proxy(self, store):
        implementation = add_contract(store, is_upgradeable=True)

        with pytest.raises(ProxyNotFound):
            store.get_proxy(implementation)
        with pytest.raises(ProxyNotFound):
            store.update_contract(implementation, proxy_contract_id=9999)


class TestTransactions:
    """Test transaction records and rollback links."""

    def test_create_and_find(self, store):
        contract = add_contract(store)
        record = store.create_transaction(
            transaction_hash="0x01",
            contract_id=contract.id,
            method_name="increment",
            parameters=[1],
            status=TransactionStatus.PENDING,
        )

        assert store.find_transaction("0x01") is record
        assert record.status == "pending"
        assert store.find_transaction("0x02") is None

    def test_latest_transaction(self, store):
        contract = add_contract(store)
        for n in range(3):
            store.create_transaction(
                transaction_hash=f"0x0{n}", contract_id=contract.id, method_name="increment"
            )
        store.create_transaction(
            transaction_hash="0x10", contract_id=contract.id, method_name="reset"
        )

        assert store.latest_transaction(contract.id, "increment").transaction_hash == "0x02"
        assert len(store.transactions_for(contract.id)) == 4

    def test_rollback_link_same_family(self, store):
        implementation = add_contract(store)
        proxy = add_contract(store, name="Token_Proxy")
        upgrade = store.create_transaction(
            transaction_hash="0x01", contract_id=proxy.id, method_name="upgradeTo"
        )

        rollback = store.create_transaction(
            transaction_hash="0x02",
            contract_id=implementation.id,
            method_name="rollback",
            rollback_id=upgrade.id,
        )

        assert rollback.rollback_id == upgrade.id

    def test_rollback_link_other_family_rejected(self, store):
        token = add_contract(store)
        vault = add_contract(store, name="Vault")
        upgrade = store.create_transaction(
            transaction_hash="0x01", contract_id=vault.id, method_name="upgradeTo"
        )

        with pytest.raises(InvalidRollbackLink):
            store.create_transaction(
                transaction_hash="0x02",
                contract_id=token.id,
                method_name="rollback",
                rollback_id=upgrade.id,
            )

    def test_rollback_link_missing_target(self, store):
        token = add_contract(store)
        record = store.create_transaction(
            transaction_hash="0x01", contract_id=token.id, method_name="upgradeTo"
        )

        with pytest.raises(InvalidRollbackLink):
            store.update_transaction(record, rollback_id=9999)


class TestTransactionScope:
    """Test commit and rollback behaviour of transaction()."""

    def test_commits_on_success(self, store, session):
        with store.transaction():
            add_contract(store)

        session.rollback()
        assert session.query(ContractRecord).count() == 1

    def test_rolls_back_on_error(self, store, session):
        with pytest.raises(RuntimeError):
            with store.transaction():
                add_contract(store)
                raise RuntimeError("boom")

        assert session.query(ContractRecord).count() == 0

    def test_nested_scope_joins_outer(self, store, session):
        """Test that a failure in the outer scope discards inner writes."""
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    contract = add_contract(store)
                    store.create_transaction(
                        transaction_hash="0x01", contract_id=contract.id, method_name="constructor"
                    )
                raise RuntimeError("boom")

        assert session.query(ContractRecord).count() == 0
        assert session.query(TransactionRecord).count() == 0


class TestConnect:
    def test_connect_creates_schema(self, tmp_path):
        store = connect(f"sqlite:///{tmp_path / 'contracts.db'}")

        with store.transaction():
            add_contract(store)

        reopened = connect(f"sqlite:///{tmp_path / 'contracts.db'}")
        assert reopened.find_contract("Token", "local") is not None
        store.session.close()
        reopened.session.close()
