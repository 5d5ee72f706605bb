from .loader import BUILTIN_CATALOG, components_from, load_catalog, resolve_reference

__all__ = [
    "BUILTIN_CATALOG",
    "components_from",
    "load_catalog",
    "resolve_reference",
]
