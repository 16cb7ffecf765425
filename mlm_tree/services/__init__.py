"""
Services.

Business logic layer.
"""

from mlm_tree.services.base_service import BaseService, log_operation, transaction
from mlm_tree.services.member.registration import MemberRegistrationService
from mlm_tree.services.membership_client import MembershipClient
from mlm_tree.services.rpc_client import RpcCallError, RpcClient
from mlm_tree.services.tree_service import TreeService


__all__ = [
    "BaseService",
    "MemberRegistrationService",
    "MembershipClient",
    "RpcCallError",
    "RpcClient",
    "TreeService",
    "log_operation",
    "transaction",
]
