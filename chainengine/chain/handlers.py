"""Stage handler registry.

Handlers are registered per (chain id, stage id) and run when a chain enters
that stage. They carry game-specific logic (granting tools, tracking
deliveries) so the narrative structure can stay in the chain documents.
"""

from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass
class HandlerContext:
    """Context passed to stage handlers."""
    chain_manager: Any


StageHandler = Callable[[str, str, HandlerContext], Union[None, Awaitable[None]]]


class HandlerRegistry:
    """Maps (chain_id, stage_id) to a single handler.

    A later registration for the same pair replaces the earlier one.
    """

    def __init__(self):
        self._handlers: Dict[Tuple[str, str], StageHandler] = {}

    def register(self, chain_id: str, stage_id: str, handler: StageHandler) -> None:
        self._handlers[(chain_id, stage_id)] = handler

    def unregister(self, chain_id: str, stage_id: str) -> bool:
        return self._handlers.pop((chain_id, stage_id), None) is not None

    def has_handler(self, chain_id: str, stage_id: str) -> bool:
        return (chain_id, stage_id) in self._handlers

    def get(self, chain_id: str, stage_id: str) -> Optional[StageHandler]:
        return self._handlers.get((chain_id, stage_id))

    async def execute(self, chain_id: str, stage_id: str, context: HandlerContext) -> bool:
        """Run the handler for a chain + stage if one is registered.

        Sync and async handlers are both accepted. Exceptions raised by the
        handler are logged and swallowed: by the time a handler runs the
        stage transition has already been committed.

        Returns:
            True if a handler ran to completion, False if none was registered
            or it failed
        """
        handler = self._handlers.get((chain_id, stage_id))
        if handler is None:
            return False

        try:
            result = handler(chain_id, stage_id, context)
            if inspect.isawaitable(result):
                await result
            return True
        except Exception:
            logger.warning("Handler failed for %s:%s", chain_id, stage_id, exc_info=True)
            return False

    def __len__(self) -> int:
        return len(self._handlers)
