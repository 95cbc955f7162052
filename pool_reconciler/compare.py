"""Structural equality of resource descriptions."""

from pydantic import BaseModel

from pool_reconciler.exceptions import ReconcilerError

# Representative instance ids identify what exists, not what is desired
IGNORED_FIELDS = frozenset({"cloud_id"})


def is_equal(
    actual: BaseModel, expected: BaseModel, ignore: frozenset[str] = IGNORED_FIELDS
) -> bool:
    """Return whether two resource descriptions describe the same state.

    Raises:
        ReconcilerError: If the descriptions are of different kinds
    """
    if type(actual) is not type(expected):
        raise ReconcilerError(
            f"Cannot compare {type(actual).__name__} with {type(expected).__name__}"
        )
    return actual.model_dump(exclude=set(ignore)) == expected.model_dump(exclude=set(ignore))
