"""Helpers for loading the rule catalog."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from silverqc.validate.constants import (
    INFORMATIONAL_KINDS,
    OVERRIDABLE_PARAMS,
    PERCENTAGE_KINDS,
    RULE_KIND_PARAMS,
)
from silverqc.validate.errors import CatalogError
from silverqc.validate.paths import RULES_PATH


@dataclass(frozen=True)
class Rule:
    table: str
    check_name: str
    kind: str
    params: Mapping[str, Any] = field(default_factory=dict)
    details: str | None = None

    @property
    def expected_value(self) -> str | None:
        if self.kind in INFORMATIONAL_KINDS:
            return None
        if self.kind in PERCENTAGE_KINDS:
            return f"<={format_pct(self.params['ceiling_pct'])}%"
        return "0"

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)


@dataclass(frozen=True)
class Catalog:
    tables: tuple[str, ...]
    rules: tuple[Rule, ...]

    def rules_for(self, table: str) -> list[Rule]:
        return [rule for rule in self.rules if rule.table == table]

    def __len__(self) -> int:
        return len(self.rules)


def format_pct(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _parse_ceiling(value: Any, where: str) -> Decimal:
    try:
        ceiling = Decimal(str(value).strip().rstrip("%"))
    except InvalidOperation as exc:
        raise CatalogError(f"{where}: ceiling_pct '{value}' is not a number") from exc
    if not Decimal(0) <= ceiling <= Decimal(100):
        raise CatalogError(f"{where}: ceiling_pct must be between 0 and 100, got {value}")
    return ceiling


def _parse_values(value: Any, name: str, where: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise CatalogError(f"{where}: {name} must be a list of strings")
    items = list(value)
    if any(item is None for item in items):
        raise CatalogError(f"{where}: {name} must not contain null entries")
    values = tuple(str(item) for item in items)
    if not values:
        raise CatalogError(f"{where}: {name} must not be empty")
    return values


def _normalize_params(kind: str, params: dict[str, Any], where: str) -> dict[str, Any]:
    if "ceiling_pct" in params:
        params["ceiling_pct"] = _parse_ceiling(params["ceiling_pct"], where)
    if "allowed_values" in params:
        params["allowed_values"] = _parse_values(params["allowed_values"], "allowed_values", where)
    if "sentinels" in params:
        params["sentinels"] = _parse_values(params["sentinels"], "sentinels", where)
    if kind == "foreign_key" and "." not in str(params["references"]):
        raise CatalogError(f"{where}: references must look like 'table.column'")
    return params


def _parse_rule(table: str, entry: Any) -> Rule:
    if not isinstance(entry, dict):
        raise CatalogError(f"{table}: every rule must be a mapping, got {entry!r}")
    payload = dict(entry)
    check_name = payload.pop("check", None)
    kind = payload.pop("kind", None)
    if not check_name or not kind:
        raise CatalogError(f"{table}: rule {entry!r} needs both 'check' and 'kind'")
    where = f"{table}.{check_name}"
    if kind not in RULE_KIND_PARAMS:
        raise CatalogError(f"{where}: unknown rule kind '{kind}'")
    missing = [name for name in RULE_KIND_PARAMS[kind] if payload.get(name) in (None, "")]
    if missing:
        raise CatalogError(f"{where}: missing parameter(s) {', '.join(missing)} for kind '{kind}'")
    details = payload.pop("details", None)
    params = _normalize_params(kind, payload, where)
    return Rule(
        table=table,
        check_name=str(check_name),
        kind=kind,
        params=params,
        details=str(details) if details is not None else None,
    )


def parse_catalog(raw: Mapping[str, Any]) -> Catalog:
    datasets = (raw or {}).get("datasets")
    if not isinstance(datasets, dict) or not datasets:
        raise CatalogError("Catalog must declare at least one dataset under 'datasets'")
    tables: list[str] = []
    rules: list[Rule] = []
    seen: set[tuple[str, str]] = set()
    for table, entries in datasets.items():
        tables.append(table)
        for entry in entries or []:
            rule = _parse_rule(table, entry)
            key = (rule.table, rule.check_name)
            if key in seen:
                raise CatalogError(f"Check '{rule.check_name}' is declared twice for '{table}'")
            seen.add(key)
            rules.append(rule)
    return Catalog(tables=tuple(tables), rules=tuple(rules))


def apply_overrides(catalog: Catalog, overrides: Mapping[str, Any] | None) -> Catalog:
    if not overrides:
        return catalog
    index = {(rule.table, rule.check_name): rule for rule in catalog.rules}
    updated: dict[tuple[str, str], Rule] = {}
    for table, checks in overrides.items():
        if table not in catalog.tables:
            raise CatalogError(f"Override targets unknown dataset '{table}'")
        for check_name, values in (checks or {}).items():
            rule = index.get((table, check_name))
            if rule is None:
                raise CatalogError(f"Override targets unknown check '{table}.{check_name}'")
            unknown = set(values or {}) - OVERRIDABLE_PARAMS
            if unknown:
                raise CatalogError(
                    f"{table}.{check_name}: only {sorted(OVERRIDABLE_PARAMS)} can be overridden, "
                    f"got {sorted(unknown)}"
                )
            params = dict(rule.params)
            params.update(values or {})
            params = _normalize_params(rule.kind, params, f"{table}.{check_name}")
            updated[(table, check_name)] = replace(rule, params=params)
    rules = tuple(updated.get((rule.table, rule.check_name), rule) for rule in catalog.rules)
    return replace(catalog, rules=rules)


def load_catalog(path: Path | None = None, overrides_path: Path | None = None) -> Catalog:
    source = path or RULES_PATH
    if not source.exists():
        raise CatalogError(f"Rule catalog not found at {source}")
    try:
        raw = yaml.safe_load(source.read_text())
    except yaml.YAMLError as exc:
        raise CatalogError(f"Rule catalog at {source} is not valid YAML: {exc}") from exc
    catalog = parse_catalog(raw)
    if overrides_path is None:
        return catalog
    if not overrides_path.exists():
        raise CatalogError(f"Overrides file not found at {overrides_path}")
    try:
        overrides = yaml.safe_load(overrides_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise CatalogError(f"Overrides at {overrides_path} are not valid YAML: {exc}") from exc
    return apply_overrides(catalog, overrides)
