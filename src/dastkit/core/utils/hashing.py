"""SHA-256 content hashing for document change detection"""

import hashlib
import json

from dastkit.core.models import Root
from dastkit.core.serialization import encode


def sha256(content: str) -> str:
    """Return hex-encoded SHA-256 hash of content (64 chars, matches String(64) column)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def canonical_json(tree: Root) -> str:
    """Compact, key-sorted wire JSON of a tree; equal trees give equal text."""
    return json.dumps(encode(tree).to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def document_hash(tree: Root) -> str:
    return sha256(canonical_json(tree))
