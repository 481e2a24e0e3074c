"""Utilities for running async operations in CLI commands."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any


def coro[T](f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """
    Decorator that makes an async function synchronous for Click.

    Usage:
        @tree.command()
        @coro
        async def rebuild():
            await build_tree(session).rebuild()
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return asyncio.run(f(*args, **kwargs))

    return wrapper
