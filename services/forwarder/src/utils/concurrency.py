import asyncio
from typing import Callable, TypeVar

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking call in the default executor and wait for it.

    The caller stays suspended until ``func`` returns, so a control loop that
    awaits this does not make progress on anything else meanwhile.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
