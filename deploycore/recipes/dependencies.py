"""Dependency rules: when an option setting is shown, based on other settings' values."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence, Set

from deploycore.recipes.models import (
    OptionSettingItem,
    OptionSettingValueType,
    find_option_setting,
)


def is_option_setting_displayable(
    option_setting: OptionSettingItem,
    resolve_setting: Callable[[str], OptionSettingItem],
    resolve_value: Callable[[OptionSettingItem], Any],
) -> bool:
    """Return False as soon as one dependency rule is not satisfied.

    ``resolve_setting`` raises SettingNotFoundError for an unknown target id.
    A rule whose target value is None does not block display.
    """
    if not option_setting.depends_on:
        return True

    for dependency in option_setting.depends_on:
        depends_on_setting = resolve_setting(dependency.id)
        depends_on_value = resolve_value(depends_on_setting)
        if depends_on_value is not None and depends_on_value != dependency.value:
            return False
    return True


def build_dependency_graph(option_settings: Sequence[OptionSettingItem]) -> Dict[str, List[str]]:
    """Graph of dotted setting paths to the paths their visibility/value depends on.

    A setting points at each dependency target; an Object setting also points
    at its children, since its value is filtered by their visibility.
    """
    graph: Dict[str, List[str]] = {}

    def visit(item: OptionSettingItem, prefix: str) -> None:
        path = f"{prefix}.{item.id}" if prefix else item.id
        edges: List[str] = []
        for dependency in item.depends_on:
            target = find_option_setting(option_settings, dependency.id)
            if target is not None:
                edges.append(_path_of(option_settings, target) or dependency.id)
        if item.type == OptionSettingValueType.Object:
            edges.extend(f"{path}.{child.id}" for child in item.child_option_settings)
        graph[path] = edges
        for child in item.child_option_settings:
            visit(child, path)

    for item in option_settings:
        visit(item, "")
    return graph


def _path_of(option_settings: Sequence[OptionSettingItem], target: OptionSettingItem) -> str | None:
    def search(items: Sequence[OptionSettingItem], prefix: str) -> str | None:
        for item in items:
            path = f"{prefix}.{item.id}" if prefix else item.id
            if item is target:
                return path
            found = search(item.child_option_settings, path)
            if found:
                return found
        return None

    return search(option_settings, "")


def detect_cycles(graph: Dict[str, List[str]]) -> List[List[str]]:
    cycles: List[List[str]] = []
    temp: Set[str] = set()
    perm: Set[str] = set()
    stack: List[str] = []

    def visit(n: str):
        if n in perm:
            return
        if n in temp:
            if n in stack:
                i = stack.index(n)
                cycles.append(stack[i:] + [n])
            return
        temp.add(n)
        stack.append(n)
        for m in graph.get(n, []):
            visit(m)
        stack.pop()
        temp.remove(n)
        perm.add(n)

    for node in list(graph.keys()):
        visit(node)
    return cycles
