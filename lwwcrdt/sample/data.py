"""Sample document types for exercising replicated objects.

Each record serializes to a JSON object tagged with its ``type`` and can
produce a randomly revised copy of itself (``evolve``), which is what
simulated nodes do when they author an UPDATE.

Example::

    factory = SampleFactory(random.Random(7))
    record = factory.make()
    revised = record.evolve(p_change=0.5, rng=factory.rng)
    assert revised.version == record.version + 1
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Self

from lwwcrdt.crdt.codec import DictCodec
from lwwcrdt.utils.ids import new_id

WORDS = (
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing",
    "elit", "sed", "do", "eiusmod", "tempor", "incididunt", "ut", "labore",
    "et", "dolore", "magna", "aliqua", "enim", "ad", "minim", "veniam",
    "quis", "nostrud", "exercitation", "ullamco", "laboris", "nisi",
    "aliquip", "ex", "ea", "commodo", "consequat",
)

MAX_COLLECTION_SIZE = 4
MAX_NESTING = 2


def words(rng: random.Random, minimum: int = 5, maximum: int = 10) -> str:
    return " ".join(rng.choice(WORDS) for _ in range(rng.randint(minimum, maximum)))


def _require(data: dict[str, Any], key: str, kinds: type | tuple[type, ...]) -> Any:
    value = data[key]
    # bool is an int subclass but never a valid number here
    if not isinstance(value, kinds) or (isinstance(value, bool) and kinds is not bool):
        raise TypeError(f"{key!r} has type {type(value).__name__}")
    return value


@dataclass(frozen=True)
class SampleRecord:
    """Fields shared by every sample type.

    Attributes:
        id: Object identity; stays the same across revisions.
        version: Number of revisions applied.
        notes: Free text.
    """

    id: str
    version: int = 0
    notes: str = ""

    registry: ClassVar[dict[str, type[SampleRecord]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        SampleRecord.registry[cls.__name__] = cls

    @classmethod
    def generate(cls, rng: random.Random, depth: int = 0) -> Self:
        return cls(id=new_id(rng), version=0, notes=words(rng), **cls._random_fields(rng, depth))

    @classmethod
    def _random_fields(cls, rng: random.Random, depth: int) -> dict[str, Any]:
        return {}

    def evolve(self, p_change: float, rng: random.Random) -> Self:
        """Return the next revision, changing each field with probability ``p_change``."""
        notes = words(rng) if rng.random() < p_change else self.notes
        return replace(self, version=self.version + 1, notes=notes, **self._evolve_fields(p_change, rng))

    def _evolve_fields(self, p_change: float, rng: random.Random) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self).__name__,
            "id": self.id,
            "version": self.version,
            "notes": self.notes,
            **self._fields_to_dict(),
        }

    def _fields_to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SampleRecord:
        """Decode any registered sample type from its tagged dict.

        Raises:
            KeyError: A required field or the type tag is missing.
            TypeError: A field has the wrong JSON type.
            ValueError: The tag names a type that is not ``cls`` or one
                of its subclasses.
        """
        target = SampleRecord.registry.get(_require(data, "type", str))
        if target is None or not issubclass(target, cls):
            raise ValueError(f"{data['type']!r} is not a {cls.__name__}")
        return target(
            id=_require(data, "id", str),
            version=_require(data, "version", int),
            notes=_require(data, "notes", str),
            **target._fields_from_dict(data),
        )

    @classmethod
    def _fields_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class TextRecord(SampleRecord):
    text: str = ""

    @classmethod
    def _random_fields(cls, rng, depth):
        return {"text": words(rng, 1, 4)}

    def _evolve_fields(self, p_change, rng):
        return {"text": words(rng, 1, 4) if rng.random() < p_change else self.text}

    def _fields_to_dict(self):
        return {"text": self.text}

    @classmethod
    def _fields_from_dict(cls, data):
        return {"text": _require(data, "text", str)}


@dataclass(frozen=True)
class IntegerRecord(SampleRecord):
    count: int = 0

    @classmethod
    def _random_fields(cls, rng, depth):
        return {"count": rng.randint(-1000, 1000)}

    def _evolve_fields(self, p_change, rng):
        return {"count": rng.randint(-1000, 1000) if rng.random() < p_change else self.count}

    def _fields_to_dict(self):
        return {"count": self.count}

    @classmethod
    def _fields_from_dict(cls, data):
        return {"count": _require(data, "count", int)}


@dataclass(frozen=True)
class DecimalRecord(SampleRecord):
    amount: float = 0.0

    @classmethod
    def _random_fields(cls, rng, depth):
        return {"amount": round(rng.uniform(-100.0, 100.0), 6)}

    def _evolve_fields(self, p_change, rng):
        return {"amount": round(rng.uniform(-100.0, 100.0), 6) if rng.random() < p_change else self.amount}

    def _fields_to_dict(self):
        return {"amount": self.amount}

    @classmethod
    def _fields_from_dict(cls, data):
        return {"amount": float(_require(data, "amount", (int, float)))}


@dataclass(frozen=True)
class FlagRecord(SampleRecord):
    flag: bool = False

    @classmethod
    def _random_fields(cls, rng, depth):
        return {"flag": rng.random() < 0.5}

    def _evolve_fields(self, p_change, rng):
        return {"flag": (not self.flag) if rng.random() < p_change else self.flag}

    def _fields_to_dict(self):
        return {"flag": self.flag}

    @classmethod
    def _fields_from_dict(cls, data):
        return {"flag": _require(data, "flag", bool)}


@dataclass(frozen=True)
class ReferenceRecord(SampleRecord):
    """Points at another object by id, or at nothing."""

    target_id: str | None = None

    @classmethod
    def _random_fields(cls, rng, depth):
        return {"target_id": new_id(rng) if rng.random() < 0.75 else None}

    def _evolve_fields(self, p_change, rng):
        if rng.random() >= p_change:
            return {}
        return {"target_id": new_id(rng) if rng.random() < 0.75 else None}

    def _fields_to_dict(self):
        return {"target_id": self.target_id}

    @classmethod
    def _fields_from_dict(cls, data):
        target = data["target_id"]
        if target is not None and not isinstance(target, str):
            raise TypeError(f"'target_id' has type {type(target).__name__}")
        return {"target_id": target}


@dataclass(frozen=True)
class CollectionRecord(SampleRecord):
    """A list of nested sample records."""

    items: tuple[SampleRecord, ...] = field(default_factory=tuple)

    @classmethod
    def _random_fields(cls, rng, depth):
        if depth >= MAX_NESTING:
            return {"items": ()}
        count = rng.randrange(MAX_COLLECTION_SIZE)
        return {"items": tuple(random_record(rng, depth + 1) for _ in range(count))}

    def _evolve_fields(self, p_change, rng):
        items: list[SampleRecord] = []
        for item in self.items:
            sample = rng.random()
            if sample >= p_change:
                items.append(item)
            elif sample >= 2.0 * p_change / 3.0:
                items.append(random_record(rng, MAX_NESTING))
                items.append(item)
            elif sample >= p_change / 3.0:
                items.append(item.evolve(p_change, rng))
            # otherwise the item is dropped
        return {"items": tuple(items)}

    def _fields_to_dict(self):
        return {"items": [item.to_dict() for item in self.items]}

    @classmethod
    def _fields_from_dict(cls, data):
        return {"items": tuple(SampleRecord.from_dict(item) for item in _require(data, "items", list))}


SAMPLE_TYPES: tuple[type[SampleRecord], ...] = (
    TextRecord,
    IntegerRecord,
    DecimalRecord,
    FlagRecord,
    ReferenceRecord,
    CollectionRecord,
)


def random_record(rng: random.Random, depth: int = 0) -> SampleRecord:
    """A random instance of a random sample type."""
    return rng.choice(SAMPLE_TYPES).generate(rng, depth)


class SampleFactory:
    """Produces sample records and the codecs that decode them.

    Args:
        rng: Random source; share the simulation's for reproducible runs.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng if rng is not None else random.Random()

    @property
    def rng(self) -> random.Random:
        return self._rng

    def make(self) -> SampleRecord:
        return random_record(self._rng)

    def make_many(self, count: int) -> list[SampleRecord]:
        return [self.make() for _ in range(count)]

    @staticmethod
    def codecs() -> dict[str, DictCodec]:
        """One codec per sample type, keyed by its object type name."""
        return {cls.__name__: DictCodec(cls) for cls in SAMPLE_TYPES}
