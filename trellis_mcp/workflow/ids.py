"""Client-side temporary identifiers for new blocks and sub-configs.

IDs look like ``<prefix>_<epoch-millis>_<7 base36 chars>``.  The prefix names
the role (``wblock``, ``wtrig``, ``code_eval``, ``map_cfg`` ...) so a graph
dump is readable.  The workflow API may keep them or hand back its own IDs in
the PATCH response's ``id_mapping``.
"""

from __future__ import annotations

import secrets
import string
import time
from typing import Protocol

# Block / trigger prefixes
BLOCK = "wblock"
TRIGGER = "wtrig"
CODE_EVAL = "code_eval"
UPDATE_RECORD = "update_record"

# Sub-config prefixes
CODE_EVAL_CFG = "code_eval_cfg"
RECORD_CFG = "rec_cfg"
MAPPING_CFG = "map_cfg"
LOOP_CFG = "loop_cfg"
ASSETS_CFG = "wasset"
UPDATE_ASSET_CFG = "upd_asset_cfg"

_ALPHABET = string.digits + string.ascii_lowercase
_RANDOM_CHARS = 7


class IdGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...


class TimestampIdGenerator:
    """Wall-clock millis plus a random suffix.

    Blocks for one flow are generated in a tight loop, so the millisecond part
    usually repeats; the 36**7 random suffix carries the uniqueness.
    """

    def new_id(self, prefix: str) -> str:
        millis = time.time_ns() // 1_000_000
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_RANDOM_CHARS))
        return f"{prefix}_{millis}_{suffix}"
