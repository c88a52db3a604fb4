"""Module-level function API.

Binds plain async functions that look up the current ``DistantApi`` at
every call, so callers do not have to hold on to a client themselves.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, Iterable

from distant.client.api import DistantApi

# Operations exposed through the function API
FUNCTION_NAMES = (
    "append_file",
    "append_file_text",
    "copy",
    "create_dir",
    "exists",
    "metadata",
    "read_dir",
    "read_file",
    "read_file_text",
    "remove",
    "rename",
    "spawn",
    "spawn_wait",
    "system_info",
    "watch",
    "unwatch",
    "write_file",
    "write_file_text",
)


def _make_function(name: str, loader: Callable[[], DistantApi]):
    async def function(*args: Any, **kwargs: Any) -> Any:
        api = loader()
        return await getattr(api, name)(*args, **kwargs)

    function.__name__ = name
    function.__qualname__ = name
    function.__doc__ = f"Call ``{name}`` on the API returned by the loader."
    return function


def bind_functions(
    loader: Callable[[], DistantApi],
    names: Iterable[str] = FUNCTION_NAMES,
) -> SimpleNamespace:
    """
    Build a namespace of functions forwarding to a lazily loaded API.

    Args:
        loader: Returns the API to use; called on every invocation.
        names: Operation names to expose.

    Returns:
        Namespace with one async function per name.
    """
    return SimpleNamespace(**{name: _make_function(name, loader) for name in names})
