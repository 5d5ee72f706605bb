from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from policycatalog.core.catalog import BUILTIN_CATALOG, load_catalog
from policycatalog.core.grouping import (
    CapabilityBasedGroupingStrategy,
    ConfigurableGroupingStrategy,
    PolicyGroupingStrategy,
    load_grouping_configuration,
)
from policycatalog.core.policy.capabilities import CapabilityKind, PolicyCapability, parse_capability
from policycatalog.core.policy.category import parse_category
from policycatalog.core.policy.context import HandlerContext
from policycatalog.core.policy.exceptions import PolicyError
from policycatalog.core.preferences.datastore import (
    InMemoryPreferenceSource,
    PreferencesRepository,
    SQLitePreferenceSource,
)
from policycatalog.core.registry.policy_registry import PolicyRegistry
from policycatalog.core.usecase.dispatchers import DispatcherProvider
from policycatalog.core.usecase.policy_usecases import GetPolicyStateUseCase, SetPolicyEnabledUseCase
from policycatalog.utils.json_safe import to_jsonable

log = logging.getLogger("policycatalog.cli")


def _json_default(o):
    return to_jsonable(o)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=_json_default))


def _catalog_ref(args: argparse.Namespace) -> str:
    return args.catalog or os.environ.get("POLICYCATALOG_CATALOG", "").strip() or BUILTIN_CATALOG


def _build_context(args: argparse.Namespace) -> HandlerContext:
    """Preferences come from --prefs-db when given, otherwise memory."""

    db = getattr(args, "prefs_db", None)
    if db:
        source = SQLitePreferenceSource(db)
    else:
        source = InMemoryPreferenceSource()
    return HandlerContext(preferences=PreferencesRepository(source), dispatchers=DispatcherProvider())


def _close_context(context: HandlerContext) -> None:
    context.dispatchers.close()
    source = context.preferences.source
    if isinstance(source, SQLitePreferenceSource):
        source.close()


def _build_registry(args: argparse.Namespace, context: HandlerContext) -> PolicyRegistry:
    return PolicyRegistry(load_catalog(_catalog_ref(args), context))


def _grouping_path(args: argparse.Namespace) -> Optional[Path]:
    raw = args.grouping or os.environ.get("POLICYCATALOG_GROUPING", "").strip()
    return Path(raw) if raw else None


def _build_strategy(args: argparse.Namespace) -> PolicyGroupingStrategy:
    path = _grouping_path(args)
    if path is None:
        return CapabilityBasedGroupingStrategy()
    return ConfigurableGroupingStrategy(load_grouping_configuration(path))


def cmd_capabilities(args: argparse.Namespace) -> int:
    """List the capability vocabulary."""

    caps = list(PolicyCapability)
    if args.kind:
        caps = PolicyCapability.of_kind(CapabilityKind(args.kind))

    if args.json:
        _print_json([{"name": c.value, "kind": c.kind.value} for c in caps])
        return 0

    for c in caps:
        print(f"{c.value:<28} {c.kind.value}")
    return 0


def cmd_list_policies(args: argparse.Namespace) -> int:
    """List registered policies, optionally filtered."""

    try:
        category = parse_category(args.category) if args.category else None
        caps = [parse_capability(c) for c in (args.capability or [])]
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    context = _build_context(args)
    try:
        registry = _build_registry(args, context)
        components = registry.query(
            category=category, capabilities=caps, match_all_capabilities=args.match_all
        )
    finally:
        _close_context(context)

    if args.json:
        _print_json(components)
        return 0

    for c in components:
        caps_txt = ",".join(x.value for x in PolicyCapability if x in c.capabilities)
        print(f"{c.policy_name:<28} {c.category.value:<20} {caps_txt}")
    return 0


def cmd_groups(args: argparse.Namespace) -> int:
    """Resolve display groups against the catalog."""

    context = _build_context(args)
    try:
        registry = _build_registry(args, context)
        strategy = _build_strategy(args)
        resolved = strategy.resolve_all_groups(registry, include_empty=args.include_empty)
    finally:
        _close_context(context)

    if args.json:
        _print_json(resolved)
        return 0

    for r in resolved:
        print(f"{r.group.display_name} [{r.group.id}] ({r.size})")
        for name in r.policy_names:
            print(f"  - {name}")
    return 0


def cmd_validate_grouping(args: argparse.Namespace) -> int:
    """Validate a grouping document; exit 1 on any problem."""

    try:
        config = load_grouping_configuration(args.path, strict=args.strict)
    except PolicyError as e:
        print(f"invalid: {e}", file=sys.stderr)
        return 1

    problems: List[str] = []
    if args.catalog:
        context = _build_context(args)
        try:
            registry = _build_registry(args, context)
        finally:
            _close_context(context)
        known = {c.policy_name for c in registry.get_all_components()}
        for name in sorted(config.policy_assignments):
            if name not in known:
                problems.append(f"assignment for unknown policy: {name}")

    if not args.strict:
        for name, group_id in sorted(config.dangling_assignments().items()):
            problems.append(f"{name} assigned to undefined group: {group_id}")

    for p in problems:
        print(f"warning: {p}", file=sys.stderr)

    print(f"ok: {len(config.groups)} groups, {len(config.policy_assignments)} assignments")
    return 1 if (problems and args.fail_on_warning) else 0


async def _run_state(args: argparse.Namespace, registry: PolicyRegistry, context: HandlerContext) -> Any:
    component = registry.get_component_by_name(args.policy_name)
    if component is None:
        return None
    if args.enable is None:
        use_case = GetPolicyStateUseCase(registry, dispatcher=context.dispatchers.io)
        return await use_case(component.key)
    use_case = SetPolicyEnabledUseCase(registry, dispatcher=context.dispatchers.io)
    return await use_case(SetPolicyEnabledUseCase.Params(key=component.key, enabled=args.enable))


def cmd_state(args: argparse.Namespace) -> int:
    """Show or change one policy's state."""

    context = _build_context(args)
    try:
        registry = _build_registry(args, context)
        result = asyncio.run(_run_state(args, registry, context))
    finally:
        _close_context(context)

    if result is None:
        print(f"error: unknown policy: {args.policy_name}", file=sys.stderr)
        return 2

    payload = result.to_dict()
    if result.is_success:
        payload["state"] = to_jsonable(result.value)
    _print_json(payload)
    return 0 if result.is_success else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the policy catalog API server.

    Binds to 127.0.0.1 by default.
    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    try:
        from policycatalog.api.server import ServiceConfig, create_app
    except ImportError as e:
        print(f"error: API server dependencies missing: {e}", file=sys.stderr)
        return 2

    cfg = ServiceConfig(
        catalog=_catalog_ref(args),
        grouping_path=_grouping_path(args),
        log_level=(args.log_level or "info").upper(),
    )
    app = create_app(context=_build_context(args), config=cfg)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=(args.log_level or "info").lower())
    return 0


def _add_catalog_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--catalog",
        default=None,
        help="Catalog reference 'module:attribute' (default: $POLICYCATALOG_CATALOG or built-ins)",
    )
    p.add_argument("--prefs-db", default=None, help="SQLite preferences database (default: in-memory)")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="policycatalog", description="Policy catalog CLI")
    p.add_argument("--log-level", default=None, help="Logging level (default: $POLICYCATALOG_LOG_LEVEL or WARNING)")
    sub = p.add_subparsers(dest="cmd", required=True)

    cp = sub.add_parser("capabilities", help="List capabilities")
    cp.add_argument("--kind", choices=[k.value for k in CapabilityKind], default=None)
    cp.add_argument("--json", action="store_true", help="Print JSON")
    cp.set_defaults(func=cmd_capabilities)

    lp = sub.add_parser("list-policies", help="List registered policies")
    _add_catalog_args(lp)
    lp.add_argument("--category", default=None, help="TOGGLE or CONFIGURABLE_TOGGLE")
    lp.add_argument("--capability", action="append", default=[], help="Capability filter (repeatable)")
    lp.add_argument("--match-all", action="store_true", help="Require every --capability")
    lp.add_argument("--json", action="store_true", help="Print JSON")
    lp.set_defaults(func=cmd_list_policies)

    gp = sub.add_parser("groups", help="Show display groups")
    _add_catalog_args(gp)
    gp.add_argument("--grouping", default=None, help="Grouping document (YAML/JSON)")
    gp.add_argument("--include-empty", action="store_true", help="Include groups with no policies")
    gp.add_argument("--json", action="store_true", help="Print JSON")
    gp.set_defaults(func=cmd_groups)

    vp = sub.add_parser("validate-grouping", help="Validate a grouping document")
    vp.add_argument("path", help="Grouping document (YAML/JSON)")
    vp.add_argument("--strict", action="store_true", help="Reject assignments to undefined groups")
    vp.add_argument(
        "--catalog", default=None, help="Also check assignments against this catalog reference"
    )
    vp.add_argument("--fail-on-warning", action="store_true", help="Exit 1 if any warning is printed")
    vp.set_defaults(func=cmd_validate_grouping)

    st = sub.add_parser("state", help="Show or change a policy's state")
    _add_catalog_args(st)
    st.add_argument("policy_name", help="Policy name, e.g. auto-call-pickup")
    toggle = st.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enable", action="store_const", const=True, default=None)
    toggle.add_argument("--disable", dest="enable", action="store_const", const=False)
    st.set_defaults(func=cmd_state)

    sv = sub.add_parser("serve", help="Run the HTTP API (requires uvicorn)")
    _add_catalog_args(sv)
    sv.add_argument("--grouping", default=None, help="Grouping document (YAML/JSON)")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", default=8080, type=int)
    sv.set_defaults(func=cmd_serve)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = args.log_level or os.environ.get("POLICYCATALOG_LOG_LEVEL", "").strip() or "WARNING"
    logging.basicConfig(level=level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        return int(args.func(args))
    except PolicyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
