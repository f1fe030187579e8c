"""Configuration constants for contract-lifecycle library."""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

WORD_SIZE = 32

# Gas defaults
DEFAULT_GAS_LIMIT = 3_000_000
DEFAULT_GAS_MULTIPLIER = 1.1

# Receipt polling after a deployment is submitted
DEFAULT_RECEIPT_ATTEMPTS = 10
DEFAULT_RECEIPT_DELAY = 1.0

# Confirmation wait
DEFAULT_CONFIRMATION_INTERVAL = 2.0
DEFAULT_CONFIRMATION_TIMEOUT = 300

DEFAULT_RPC_TIMEOUT = 30
DEFAULT_NETWORK = "local"
DEFAULT_VERSION = "1.0.0"
DEFAULT_DATABASE_URL = "sqlite:///contracts.db"
DEFAULT_LEDGER_NAME = "supply-chain-ledger"

# Size of the zero-filled bytecode used when previewing without artifacts
PREVIEW_BYTECODE_SIZE = 100

PROXY_SUFFIX = "_Proxy"

# Network configuration based on ethereum-lists/chains
# EIP-3770 chain short names for environment variables
NETWORK_CONFIG = {
    "local": {
        "chain_id": 31337,
        "chain_name": "Local Development Chain",
        "short_name": "local",
        "default_rpc_env": "LOCAL_RPC_URL",
        "default_rpc_url": "http://localhost:8545",
    },
    "mainnet": {
        "chain_id": 1,
        "chain_name": "Ethereum Mainnet",
        "short_name": "eth",  # EIP-3770
        "default_rpc_env": "ETH_RPC_URL",
    },
    "sepolia": {
        "chain_id": 11155111,
        "chain_name": "Sepolia",
        "short_name": "sep",  # EIP-3770
        "default_rpc_env": "SEP_RPC_URL",
    },
    "gnosis": {
        "chain_id": 100,
        "chain_name": "Gnosis Chain",
        "short_name": "gno",  # EIP-3770
        "default_rpc_env": "GNO_RPC_URL",
    },
}

# Minimal proxy interface: constructor(implementation), upgradeTo, implementation
PROXY_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "implementation", "type": "address"},
        ],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "upgradeTo",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "implementation",
        "inputs": [],
        "outputs": [
            {"name": "", "type": "address"},
        ],
        "stateMutability": "view",
    },
]

PROXY_BYTECODE = "0x608060405234801561001057600080fd5b50"

# Ledger-database table holding recorded events
LEDGER_EVENTS_TABLE = "ContractEvents"
