"""Registry mapping pool kinds to reconciler classes."""

from collections.abc import Callable

from pool_reconciler.exceptions import UnknownResourceKindError

_RECONCILERS: dict[str, type] = {}


def register_reconciler(kind: str) -> Callable[[type], type]:
    """Class decorator registering a reconciler for pools of ``kind``."""

    def decorator(cls: type) -> type:
        if kind in _RECONCILERS and _RECONCILERS[kind] is not cls:
            raise ValueError(f"A reconciler is already registered for kind '{kind}'")
        _RECONCILERS[kind] = cls
        return cls

    return decorator


def get_reconciler_class(kind: str) -> type:
    """Return the reconciler class registered for ``kind``.

    Raises:
        UnknownResourceKindError: If nothing is registered for ``kind``
    """
    try:
        return _RECONCILERS[kind]
    except KeyError:
        known = ", ".join(sorted(_RECONCILERS)) or "none"
        raise UnknownResourceKindError(
            f"No reconciler registered for kind '{kind}'", f"Known kinds: {known}"
        ) from None


def registered_kinds() -> list[str]:
    """Return the registered kinds in sorted order."""
    return sorted(_RECONCILERS)
