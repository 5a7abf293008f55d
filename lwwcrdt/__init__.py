"""lwwcrdt: a Last-Write-Wins CRDT for JSON documents and a replica simulator.

The library is silent by default. Enable logging with one of the
helpers re-exported here, e.g. ``lwwcrdt.enable_console_logging("DEBUG")``.
"""

import logging

from lwwcrdt.crdt import (
    CRDT,
    CRDTManager,
    DecodeError,
    DictCodec,
    DocumentCodec,
    InvalidOperationError,
    JsonCodec,
    JsonManager,
    LastWriteWins,
    ObjectManager,
    Operation,
    OperationEnvelope,
    OperationTwoSet,
    OperationType,
    PatchError,
    StatusType,
    Trial,
    TypedCRDTManager,
)
from lwwcrdt.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_file_logging,
    enable_json_logging,
    enable_timed_file_logging,
    set_level,
    set_module_level,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "CRDT",
    "CRDTManager",
    "DecodeError",
    "DictCodec",
    "DocumentCodec",
    "InvalidOperationError",
    "JsonCodec",
    "JsonManager",
    "LastWriteWins",
    "ObjectManager",
    "Operation",
    "OperationEnvelope",
    "OperationTwoSet",
    "OperationType",
    "PatchError",
    "StatusType",
    "Trial",
    "TypedCRDTManager",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]
