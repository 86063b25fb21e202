"""Record identifiers: a type prefix plus random hex, e.g. ``prop_1f0c9a7e5b3d2c10``."""

import uuid

ID_HEX_LENGTH = 16


def generate_id(prefix: str) -> str:
    # Prefixes end in "_" so ids stay readable in logs and URLs
    if not prefix.endswith("_"):
        raise ValueError(f"id prefix must end with '_': {prefix!r}")
    return prefix + uuid.uuid4().hex[:ID_HEX_LENGTH]
