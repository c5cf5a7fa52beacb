import argparse
import json
import os
import sys
from typing import List, Optional

from deploycore.common.logging_config import configure_logging
from deploycore.common.settings import get_settings
from deploycore.recipes.catalog import RecipeCatalog, RecipeError


def _severity(err: RecipeError) -> str:
    return "warning" if err.error_type == "semantic_validation" else "error"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate recipe definitions and print diagnostics.")
    parser.add_argument("--path", action="append", default=None, help="Recipe directory (repeatable); defaults to DEPLOYCORE_RECIPES_PATH")
    parser.add_argument("--recursive", action="store_true", help="Scan recipe directories recursively")
    parser.add_argument("--strict", action="store_true", help="Exclude recipes with semantic warnings")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    parser.add_argument("--fail-on", choices=["none", "warning", "error"], default="none", help="Exit non-zero if threshold met")
    parser.add_argument("--log-level", default=None, help="Log level (defaults to DEPLOYCORE_LOG_LEVEL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    # stdout carries the report
    configure_logging(args.log_level or settings.log_level, stream=sys.stderr)

    catalog = RecipeCatalog(
        args.path,
        recursive=True if args.recursive else None,
        strict=True if args.strict else None,
    )
    recipes, errors = catalog.ensure_loaded(force=True)

    items = [
        {
            "file_path": err.file_path,
            "error": err.error,
            "line_number": err.line_number,
            "error_type": err.error_type,
            "severity": _severity(err),
        }
        for err in errors
    ]

    if args.format == "json":
        print(json.dumps({"recipes": [r.id for r in recipes], "count": len(items), "items": items}, indent=2))
    else:
        print(f"Loaded {len(recipes)} recipe(s) from {os.pathsep.join(catalog.paths)}")
        if not items:
            print("No diagnostics found.")
        for it in items:
            ln = f":{it['line_number']}" if it.get("line_number") else ""
            print(f"[{it['severity']}] {it['error_type']} {it['file_path']}{ln}: {it['error']}")

    if args.fail_on == "error" and any(i["severity"] == "error" for i in items):
        return 2
    if args.fail_on == "warning" and items:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
