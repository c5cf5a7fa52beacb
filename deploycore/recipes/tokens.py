"""Replacement tokens: ``{Name}`` placeholders embedded in option setting defaults."""
from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, MutableMapping

TOKEN_PATTERN = re.compile(r"\{\w+\}")


def find_replacement_tokens(value: Any) -> List[str]:
    """Return the bracketed tokens found in a string default, braces included."""
    if not isinstance(value, str):
        return []
    return [m.group(0) for m in TOKEN_PATTERN.finditer(value)]


def collect_replacement_tokens(option_settings: Iterable[Any], tokens: MutableMapping[str, str]) -> None:
    """Seed ``tokens`` with an empty substitution for every token in the tree.

    An already-registered key is reset to the empty string.
    """
    for option_setting in option_settings:
        for token in find_replacement_tokens(option_setting.default_value):
            tokens[token] = ""
        if option_setting.child_option_settings:
            collect_replacement_tokens(option_setting.child_option_settings, tokens)


def apply_replacement_tokens(value: Any, tokens: Mapping[str, str]) -> Any:
    # Tokens still mapped to "" are unresolved and stay literal
    if not isinstance(value, str):
        return value
    for token, substitution in tokens.items():
        if substitution:
            value = value.replace(token, substitution)
    return value
