"""Structural diff and apply over JSON-shaped documents.

Thin adapter around ``jsonpatch`` (RFC 6902). The rest of the package
only sees plain ``list[dict]`` patches and plain JSON values; library
exceptions are translated into ``PatchError`` at this boundary.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import jsonpatch
import jsonpointer

Patch = list[dict[str, Any]]


class PatchError(ValueError):
    """A patch could not be applied to the given document."""


def diff(before: Any, after: Any) -> Patch:
    """Return the patch that turns ``before`` into ``after``.

    An empty list means the documents are structurally equal.
    """
    return list(jsonpatch.make_patch(before, after))


def apply(document: Any, patch: Patch) -> Any:
    """Apply ``patch`` to a copy of ``document`` and return the result.

    Raises:
        PatchError: A path does not exist, a ``test`` step fails, or a
            step is malformed.
    """
    try:
        return jsonpatch.apply_patch(document, patch, in_place=False)
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as e:
        raise PatchError(str(e)) from e
    except (KeyError, IndexError, TypeError) as e:
        raise PatchError(f"patch does not fit document: {e!r}") from e


def canonical_json(value: Any) -> str:
    """Serialize ``value`` with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def digest(value: Any) -> str:
    """Stable md5 hex digest of the canonical form of ``value``."""
    return hashlib.md5(canonical_json(value).encode()).hexdigest()
