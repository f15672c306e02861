"""
Application constants.

Contract ABIs, event names and fixed thresholds.
"""

# ========================================================================
# CONTRACTS
# ========================================================================

DEFAULT_CONTENT_CONTRACT_ADDRESS = "0x5541ff300e9b01176b953ea3153006e36d4ba273"
DEFAULT_MARKETPLACE_CONTRACT_ADDRESS = "0xbd5c4612084ea90847deb475529ac74b3521498d"

FIRST_CONTENT_BLOCK = 5300011
FIRST_MARKETPLACE_BLOCK = 5300368

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Sync stream names
GLOBAL_SYNC_KEY = "global_events"

# Status endpoint reports "catching up" above this many blocks behind
CATCHING_UP_THRESHOLD_BLOCKS = 1000

# royaltyInfo() is queried against this sale price so the result is in bps
ROYALTY_BPS_DENOMINATOR = 10000

# ========================================================================
# EVENT TYPES
# ========================================================================

EVENT_TRANSFER_SINGLE = "TransferSingle"
EVENT_TOKEN_LISTED = "TokenListed"
EVENT_TOKEN_DELISTED = "TokenDelisted"
EVENT_TOKEN_PURCHASED = "TokenPurchased"

# ========================================================================
# ABIs
# ========================================================================

CONTENT_ABI = [
    {
        "type": "function",
        "name": "uri",
        "inputs": [{"type": "uint256", "name": "tokenId"}],
        "outputs": [{"type": "string", "name": ""}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "authorOf",
        "inputs": [{"type": "uint256", "name": "_tokenId"}],
        "outputs": [{"type": "address", "name": ""}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "totalSupply",
        "inputs": [{"type": "uint256", "name": "id"}],
        "outputs": [{"type": "uint256", "name": ""}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "royaltyInfo",
        "inputs": [
            {"type": "uint256", "name": "_tokenId"},
            {"type": "uint256", "name": "_salePrice"},
        ],
        "outputs": [
            {"type": "address", "name": "receiver"},
            {"type": "uint256", "name": "royaltyAmount"},
        ],
        "stateMutability": "view",
    },
    {
        "anonymous": False,
        "type": "event",
        "name": EVENT_TRANSFER_SINGLE,
        "inputs": [
            {"indexed": True, "name": "operator", "type": "address"},
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "id", "type": "uint256"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
    },
]

MARKETPLACE_ABI = [
    {
        "type": "function",
        "name": "listingCount",
        "inputs": [{"type": "uint256", "name": ""}],
        "outputs": [{"type": "uint256", "name": ""}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "listings",
        "inputs": [
            {"type": "uint256", "name": ""},
            {"type": "uint256", "name": ""},
        ],
        "outputs": [
            {"type": "uint256", "name": "price"},
            {"type": "address", "name": "seller"},
            {"type": "uint256", "name": "amount"},
        ],
        "stateMutability": "view",
    },
    {
        "anonymous": False,
        "type": "event",
        "name": EVENT_TOKEN_LISTED,
        "inputs": [
            {"indexed": True, "name": "_tokenId", "type": "uint256"},
            {"indexed": True, "name": "_seller", "type": "address"},
            {"indexed": False, "name": "_listingId", "type": "uint256"},
            {"indexed": False, "name": "amount", "type": "uint256"},
            {"indexed": False, "name": "_price", "type": "uint256"},
        ],
    },
    {
        "anonymous": False,
        "type": "event",
        "name": EVENT_TOKEN_DELISTED,
        "inputs": [
            {"indexed": True, "name": "_tokenId", "type": "uint256"},
            {"indexed": True, "name": "_seller", "type": "address"},
            {"indexed": False, "name": "_listingId", "type": "uint256"},
        ],
    },
    {
        "anonymous": False,
        "type": "event",
        "name": EVENT_TOKEN_PURCHASED,
        "inputs": [
            {"indexed": True, "name": "_tokenId", "type": "uint256"},
            {"indexed": True, "name": "_buyer", "type": "address"},
            {"indexed": True, "name": "_seller", "type": "address"},
            {"indexed": False, "name": "_listingId", "type": "uint256"},
            {"indexed": False, "name": "_amount", "type": "uint256"},
            {"indexed": False, "name": "_price", "type": "uint256"},
        ],
    },
]
