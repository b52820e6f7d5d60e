import copy
import hashlib
import json
import math
from dataclasses import asdict, dataclass, fields, is_dataclass, replace
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any


def _qfloat(x: float, places: int = 8) -> float:
    # str -> Decimal keeps the shortest repr, so equal-looking floats agree
    quantum = Decimal(1).scaleb(-places)
    f = float(Decimal(str(x)).quantize(quantum, rounding=ROUND_HALF_EVEN))
    return 0.0 if f == 0.0 else f


def _canon(obj: Any, places: int = 8):
    """Plain, JSON-ready form of obj with floats quantized to places."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return "NaN" if math.isnan(obj) else _qfloat(obj, places)
    if is_dataclass(obj):
        obj = asdict(obj)
    if isinstance(obj, dict):
        return {str(k): _canon(v, places) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_canon(v, places) for v in obj]
    return obj


def deterministic_id(obj: Any, places: int = 8, digest_bytes: int = 16) -> str:
    """Stable hex digest of plain data (dicts, lists, floats, dataclasses)."""
    payload = json.dumps(
        _canon(obj, places),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=repr,  # opaque vocabulary elements
    )
    return hashlib.blake2b(payload.encode("utf-8"), digest_size=digest_bytes).hexdigest()


@dataclass
class SchemaClass:
    """Dataclass base with a value-based id; copies go through __init__."""

    def get_id(self) -> str:
        return deterministic_id(self)

    # For logging ease
    def __str__(self) -> str:
        return json.dumps(asdict(self), indent=4)

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, copy.deepcopy(getattr(self, f.name)))

    def __copy__(self):
        return replace(self)

    def __deepcopy__(self, memo):
        return replace(self)
