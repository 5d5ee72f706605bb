from __future__ import annotations

import importlib
import inspect
import logging
from typing import Any, Iterable, List, Tuple

from policycatalog.core.policy.context import HandlerContext
from policycatalog.core.policy.contracts import PolicyComponent
from policycatalog.core.policy.definition import PolicyContract, build_component
from policycatalog.core.policy.exceptions import PolicyConfigurationError

log = logging.getLogger("policycatalog.catalog")

BUILTIN_CATALOG = "policycatalog.core.catalog.builtin:BUILTIN_POLICIES"


def resolve_reference(ref: str) -> Any:
    """Resolve "package.module:attribute" (attribute may be dotted).

    Raises
    - PolicyConfigurationError: malformed reference or missing target.
    """

    if not isinstance(ref, str) or ":" not in ref:
        raise PolicyConfigurationError(f"Catalog reference must look like 'module:attribute', got {ref!r}")

    module_name, _, attr_path = ref.partition(":")
    module_name = module_name.strip()
    attr_path = attr_path.strip()
    if not module_name or not attr_path:
        raise PolicyConfigurationError(f"Catalog reference must look like 'module:attribute', got {ref!r}")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise PolicyConfigurationError(f"Cannot import catalog module {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise PolicyConfigurationError(f"{module_name!r} has no attribute {attr_path!r}") from e
    return target


def _call_factory(factory: Any, context: HandlerContext) -> Any:
    try:
        params = inspect.signature(factory).parameters
    except (TypeError, ValueError):
        return factory()
    if params:
        return factory(context)
    return factory()


def _to_component(item: Any, context: HandlerContext) -> PolicyComponent[Any]:
    if isinstance(item, PolicyComponent):
        return item
    if isinstance(item, type) and issubclass(item, PolicyContract):
        return build_component(item, context)
    raise PolicyConfigurationError(
        f"Catalog entries must be PolicyComponent or PolicyContract subclasses, got {type(item).__name__}"
    )


def components_from(source: Any, context: HandlerContext) -> Tuple[PolicyComponent[Any], ...]:
    """Materialize a catalog source into components.

    A source is an iterable of components and/or decorated policy classes,
    or a factory returning one. Factories that declare a parameter receive
    the context.
    """

    if callable(source) and not isinstance(source, type):
        source = _call_factory(source, context)

    if not isinstance(source, Iterable) or isinstance(source, (str, bytes)):
        raise PolicyConfigurationError(f"Catalog source is not iterable: {type(source).__name__}")

    components: List[PolicyComponent[Any]] = [_to_component(item, context) for item in source]
    return tuple(components)


def load_catalog(ref: str, context: HandlerContext) -> Tuple[PolicyComponent[Any], ...]:
    """Load components from a "module:attribute" reference."""

    components = components_from(resolve_reference(ref), context)
    log.info("loaded policy catalog", extra={"catalog": ref, "component_count": len(components)})
    return components
