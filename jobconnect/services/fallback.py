"""
Primary-or-fallback execution shared by the scorer and the resume store
"""
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class StrategyOutcome(Generic[T]):
    value: T
    strategy: str  # "primary" or "fallback"
    error: Optional[BaseException] = None

    @property
    def degraded(self) -> bool:
        return self.strategy == "fallback"


async def _call(fn: Callable[[], Any]) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


class FallbackChain(Generic[T]):
    """Run ``primary``; if it raises, run ``fallback`` instead.

    Both strategies are zero-argument callables, sync or async. An exception
    from the fallback propagates to the caller.
    """

    def __init__(self, primary: Callable[[], Any], fallback: Callable[[], Any], name: str = "operation"):
        self.primary = primary
        self.fallback = fallback
        self.name = name

    async def run(self) -> StrategyOutcome[T]:
        try:
            return StrategyOutcome(value=await _call(self.primary), strategy="primary")
        except Exception as e:
            logger.warning(f"{self.name}: primary strategy failed ({e.__class__.__name__}: {e}), using fallback")
            value = await _call(self.fallback)
            return StrategyOutcome(value=value, strategy="fallback", error=e)
