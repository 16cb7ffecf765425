"""
Command router.

Maps command names to handlers and runs them through the registered
middlewares. A handler receives the decoded request and the shared
context dict; middlewares wrap handlers and may add to the context.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from mlm_tree.utils.exceptions import TreeError
from mlm_tree.utils.rpc_envelope import RpcRequest


Handler = Callable[[RpcRequest, dict[str, Any]], Awaitable[Any]]
Middleware = Callable[[Handler, RpcRequest, dict[str, Any]], Awaitable[Any]]


class UnknownCommandError(TreeError):
    """No handler registered for the command."""

    status = 404
    code = "UNKNOWN_COMMAND"


class CommandRouter:
    """Registry of command handlers."""

    def __init__(self, name: str | None = None) -> None:
        """
        Initialize router.

        Args:
            name: Router name for logs
        """
        self.name = name or "root"
        self._handlers: dict[str, Handler] = {}
        self._middlewares: list[Middleware] = []

    @property
    def commands(self) -> list[str]:
        """Registered command names."""
        return sorted(self._handlers)

    def command(self, name: str) -> Callable[[Handler], Handler]:
        """
        Register a handler for a command.

        Usage:
            @router.command("user.tree.getUserTree")
            async def get_user_tree(request, data):
                ...

        Raises:
            ValueError: Command already registered
        """
        def decorator(handler: Handler) -> Handler:
            if name in self._handlers:
                raise ValueError(f"Command {name} is already registered")
            self._handlers[name] = handler
            return handler

        return decorator

    def include_router(self, router: "CommandRouter") -> None:
        """
        Merge another router's handlers into this one.

        Raises:
            ValueError: Command registered in both routers
        """
        for name, handler in router._handlers.items():
            self.command(name)(handler)
        logger.debug(
            f"Router {router.name} included into {self.name}",
            extra={"commands": len(router._handlers)},
        )

    def middleware(self, middleware: Middleware) -> None:
        """Register a middleware; the first registered runs outermost."""
        self._middlewares.append(middleware)

    def resolve(self, cmd: str) -> Handler:
        """
        Find the handler for a command.

        Raises:
            UnknownCommandError: No handler registered
        """
        handler = self._handlers.get(cmd)
        if handler is None:
            raise UnknownCommandError(f"Unknown command: {cmd}")
        return handler

    async def dispatch(
        self, request: RpcRequest, data: dict[str, Any] | None = None
    ) -> Any:
        """
        Run a request through the middlewares and its handler.

        Args:
            request: Decoded request
            data: Context shared by middlewares and the handler

        Returns:
            Handler result (or whatever an outer middleware returns instead)
        """
        context = dict(data or {})

        async def call_handler(req: RpcRequest, ctx: dict[str, Any]) -> Any:
            return await self.resolve(req.cmd)(req, ctx)

        handler: Handler = call_handler
        for middleware in reversed(self._middlewares):
            handler = _wrap(middleware, handler)

        return await handler(request, context)


def _wrap(middleware: Middleware, handler: Handler) -> Handler:
    async def wrapped(request: RpcRequest, data: dict[str, Any]) -> Any:
        return await middleware(handler, request, data)

    return wrapped
