"""
Binary tree constants.

Limits shared by the tree services and the RPC payload schemas.
"""

# Subtree materialization (user.tree.getUserTree)
MIN_TREE_DEPTH = 1
MAX_TREE_DEPTH = 5
DEFAULT_TREE_DEPTH = 3

# Downline search (user.tree.searchUsers)
MIN_SEARCH_TERM_LENGTH = 2
DEFAULT_SEARCH_PAGE = 1
DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100

# Lineage
DEFAULT_PARENT_CHAIN_LEVELS = 6

# Referral codes: uuid4 hex prefix, upper-cased
REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_MAX_ATTEMPTS = 10
REFERRAL_CODE_MAX_LENGTH = 20

# Fallback display name for members without personal info
UNNAMED_MEMBER = "No name"
