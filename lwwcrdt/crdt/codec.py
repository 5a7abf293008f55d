"""Mapping between typed domain objects and JSON document trees.

A typed CRDT manager needs two functions: ``to_tree`` to turn a value
into the JSON document it diffs against, and ``from_tree`` to project the
replayed document back onto the type. Both are bundled in a
``DocumentCodec`` supplied by the caller.

Example::

    codec = DictCodec(ScalarRecord)
    tree = codec.to_tree(record)
    assert codec.from_tree(tree) == record
"""

from __future__ import annotations

import copy
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


class DecodeError(ValueError):
    """A document does not have the shape the codec expects."""


@runtime_checkable
class DocumentCodec(Protocol[T]):
    """Protocol for document codecs.

    ``object_type`` names the decoded type; replicas exchange it so a
    receiver can pick the matching codec for an object it has not seen.
    """

    @property
    def object_type(self) -> str:
        ...

    def to_tree(self, value: T) -> dict[str, Any]:
        ...

    def from_tree(self, tree: Any) -> T:
        """Decode a document.

        Raises:
            DecodeError: The document cannot be mapped onto ``T``.
        """
        ...


class JsonCodec:
    """Identity codec for plain JSON objects."""

    object_type = "json"

    def to_tree(self, value: dict[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(value)

    def from_tree(self, tree: Any) -> dict[str, Any]:
        if not isinstance(tree, dict):
            raise DecodeError(f"expected a JSON object, got {type(tree).__name__}")
        return copy.deepcopy(tree)

    def __repr__(self) -> str:
        return "JsonCodec()"


class DictCodec(Generic[T]):
    """Codec for classes exposing ``to_dict()`` and a ``from_dict()`` classmethod.

    Args:
        cls: The domain class.
        object_type: Name exchanged between replicas. Defaults to the
            class name.
    """

    def __init__(self, cls: type[T], object_type: str | None = None):
        self._cls = cls
        self._object_type = object_type or cls.__name__

    @property
    def object_type(self) -> str:
        return self._object_type

    @property
    def cls(self) -> type[T]:
        return self._cls

    def to_tree(self, value: T) -> dict[str, Any]:
        return value.to_dict()

    def from_tree(self, tree: Any) -> T:
        if not isinstance(tree, dict):
            raise DecodeError(f"{self._object_type}: expected a JSON object, got {type(tree).__name__}")
        try:
            return self._cls.from_dict(tree)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"{self._object_type}: {e!r}") from e

    def __repr__(self) -> str:
        return f"DictCodec({self._cls.__name__})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DictCodec):
            return NotImplemented
        return self._cls is other._cls and self._object_type == other._object_type

    def __hash__(self) -> int:
        return hash((self._cls, self._object_type))
