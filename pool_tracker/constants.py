"""Constants used throughout the Pool Trade Tracker application.

This module defines common constants to avoid duplication and ensure consistency.
"""

# Token program IDs
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Default network and pool
DEFAULT_RPC_URL = "https://rpc.mainnet.x1.xyz"
DEFAULT_POOL_ID = "VmZfZnHzFTKSf19ZvAxa4duzChve3JYHVCPq1FvezhN"
DEFAULT_POOL_API_BASE_URL = "https://api.xdex.xyz/api/xendex/pool"

# Tracked mints: the wrapped native (base) asset and the priced token
NATIVE_MINT = "So11111111111111111111111111111111111111112"
DEFAULT_TOKEN_MINT = "81LkybSBLvXYMTF6azXohUWyBvDGUXznm4yiXPkYkDTJ"

# Lamports per native unit is 10 ** NATIVE_DECIMALS
NATIVE_DECIMALS = 9

# SPL token account layout
TOKEN_ACCOUNT_MINT_OFFSET = 0
TOKEN_ACCOUNT_MINT_LENGTH = 32
TOKEN_ACCOUNT_AMOUNT_OFFSET = 64
TOKEN_ACCOUNT_AMOUNT_LENGTH = 8

# RPC limits
MAX_SIGNATURES_PER_PAGE = 1000

UNKNOWN_SIGNATURE = "unknown_signature"
UNKNOWN_TRADER = "Unknown"
