"""Sample document types used to drive replica simulations."""

from lwwcrdt.sample.data import (
    CollectionRecord,
    DecimalRecord,
    FlagRecord,
    IntegerRecord,
    ReferenceRecord,
    SampleFactory,
    SampleRecord,
    TextRecord,
)

__all__ = [
    "CollectionRecord",
    "DecimalRecord",
    "FlagRecord",
    "IntegerRecord",
    "ReferenceRecord",
    "SampleFactory",
    "SampleRecord",
    "TextRecord",
]
