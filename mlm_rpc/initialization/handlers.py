"""
RPC Initialization - Handlers Module.

Module: handlers.py
Registers all command handlers on the root router.
"""

from loguru import logger

from mlm_rpc.handlers import placement, qualification, tree
from mlm_rpc.router import CommandRouter


def register_all_handlers(router: CommandRouter) -> None:
    """
    Include every handler router.

    Args:
        router: Root router
    """
    router.include_router(placement.router)
    router.include_router(tree.router)
    router.include_router(qualification.router)

    logger.info(f"Registered {len(router.commands)} commands")
