from __future__ import annotations

from dataclasses import is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


def to_jsonable(obj: Any) -> Any:
    """
    Convert catalog objects to JSON-serializable equivalents.

    - Objects exposing to_dict() (components, states, results, groups) use it.
    - Enums serialize by value; sets become sorted lists.
    - Types (e.g. a PolicyKey's state_type) serialize by name.
    - Never imports or executes anything dynamically.
    """
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, str):
        return obj

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, type):
        return obj.__name__

    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())

    # dataclasses without to_dict: shallow field walk (asdict would deep-copy
    # handlers and mappingproxies)
    if is_dataclass(obj):
        return {f: to_jsonable(getattr(obj, f)) for f in obj.__dataclass_fields__}

    # mappings (including mappingproxy)
    if isinstance(obj, Mapping):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(x) for x in obj), key=str)

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]

    # fallback: string representation
    return str(obj)
