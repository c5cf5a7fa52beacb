"""Recipe catalog: loads recipe definition documents from disk and validates them."""
from __future__ import annotations

import glob
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from deploycore.common import metrics
from deploycore.common.settings import get_settings
from deploycore.recipes.dependencies import build_dependency_graph, detect_cycles
from deploycore.recipes.models import OptionSettingItem, RecipeDefinition, find_option_setting

logger = logging.getLogger(__name__)

RECIPE_FILE_SUFFIXES = (".recipe", ".json", ".yaml", ".yml")
_JSON_SUFFIXES = (".recipe", ".json")


@dataclass
class RecipeError:
    file_path: str
    error: str
    error_type: str  # yaml_parse | io_error | security_validation | schema_validation | semantic_validation | cross_file_validation
    line_number: Optional[int] = None


def _parse_document(path: str, max_file_size_bytes: int) -> Tuple[Optional[dict], Optional[RecipeError]]:
    try:
        try:
            size = os.stat(path).st_size
        except FileNotFoundError:
            size = 0
        if size > max_file_size_bytes:
            return None, RecipeError(file_path=path, error=f"file too large: {size} bytes > limit {max_file_size_bytes}", error_type="security_validation")
        with open(path, "r", encoding="utf-8-sig") as f:
            if path.endswith(_JSON_SUFFIXES):
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        return data, None
    except json.JSONDecodeError as e:
        return None, RecipeError(file_path=path, error=str(e), error_type="yaml_parse", line_number=e.lineno)
    except yaml.MarkedYAMLError as e:
        line = getattr(getattr(e, "problem_mark", None), "line", None)
        return None, RecipeError(file_path=path, error=str(e), error_type="yaml_parse", line_number=(int(line) + 1) if line is not None else None)
    except yaml.YAMLError as e:
        return None, RecipeError(file_path=path, error=str(e), error_type="yaml_parse")
    except (OSError, UnicodeDecodeError) as e:
        return None, RecipeError(file_path=path, error=str(e), error_type="io_error")


def _duplicate_sibling_ids(option_settings: Sequence[OptionSettingItem], prefix: str = "") -> List[str]:
    duplicates: List[str] = []
    seen: set = set()
    for item in option_settings:
        path = f"{prefix}.{item.id}" if prefix else item.id
        if item.id in seen:
            duplicates.append(path)
        seen.add(item.id)
        duplicates.extend(_duplicate_sibling_ids(item.child_option_settings, path))
    return duplicates


def validate_recipe(recipe: RecipeDefinition) -> List[str]:
    """Semantic checks beyond the pydantic schema. Each message is a warning."""
    issues: List[str] = []
    for root in recipe.option_settings:
        for item in root.walk():
            for dependency in item.depends_on:
                if find_option_setting(recipe.option_settings, dependency.id) is None:
                    issues.append(f"option setting '{item.id}' depends on unknown setting '{dependency.id}'")
            try:
                item.build_validators()
            except (ValidationError, TypeError) as e:
                issues.append(f"option setting '{item.id}' has an invalid validator configuration: {e}")
    try:
        recipe.build_validators()
    except (ValidationError, TypeError) as e:
        issues.append(f"recipe '{recipe.id}' has an invalid validator configuration: {e}")
    return issues


class RecipeCatalog:
    """Thread-safe cache of the recipe definitions found under ``paths``.

    Documents that fail to parse or validate are left out and reported as
    ``RecipeError`` diagnostics; loading never raises for a bad document.
    """

    def __init__(
        self,
        paths: Optional[Iterable[str]] = None,
        *,
        recursive: Optional[bool] = None,
        strict: Optional[bool] = None,
        max_file_size_bytes: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        if isinstance(paths, str):
            paths = [paths]
        self.paths: Tuple[str, ...] = tuple(os.path.abspath(p) for p in (paths if paths is not None else settings.recipes_paths))
        self.recursive = settings.recipes_recursive if recursive is None else recursive
        self.strict = settings.validation_strict if strict is None else strict
        self.max_file_size_bytes = settings.max_file_size_bytes if max_file_size_bytes is None else max_file_size_bytes
        self._recipes: List[RecipeDefinition] = []
        self._errors: List[RecipeError] = []
        self._mtimes: Dict[str, int] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def recipes(self) -> List[RecipeDefinition]:
        return list(self._recipes)

    @property
    def errors(self) -> List[RecipeError]:
        return list(self._errors)

    def snapshot(self) -> Tuple[List[RecipeDefinition], List[RecipeError]]:
        return list(self._recipes), list(self._errors)

    def get_recipe(self, recipe_id: str) -> Optional[RecipeDefinition]:
        """Return a private copy of the recipe definition with ``recipe_id``."""
        self.ensure_loaded()
        for recipe in self._recipes:
            if recipe.id == recipe_id:
                return recipe.model_copy(deep=True)
        return None

    def _scan_files(self) -> List[str]:
        files: List[str] = []
        for root in self.paths:
            if not os.path.isdir(root):
                continue
            pattern = os.path.join(root, "**", "*") if self.recursive else os.path.join(root, "*")
            files.extend(
                p for p in glob.glob(pattern, recursive=self.recursive)
                if p.endswith(RECIPE_FILE_SUFFIXES) and os.path.isfile(p)
            )
        return sorted(files)

    def _need_reload(self) -> bool:
        if not self._loaded:
            return True
        files = self._scan_files()
        if set(files) != set(self._mtimes):
            return True
        for p in files:
            try:
                m = os.stat(p).st_mtime_ns
            except FileNotFoundError:
                m = 0
            if self._mtimes.get(p) != m:
                return True
        return False

    def ensure_loaded(self, force: bool = False) -> Tuple[List[RecipeDefinition], List[RecipeError]]:
        with self._lock:
            if not force and not self._need_reload():
                return self.snapshot()
            started = time.perf_counter()
            files = self._scan_files()
            errors: List[RecipeError] = []
            mtimes: Dict[str, int] = {}
            parsed: List[Tuple[str, RecipeDefinition]] = []
            id_to_files: Dict[str, List[str]] = {}

            for path in files:
                try:
                    mtimes[path] = os.stat(path).st_mtime_ns
                except FileNotFoundError:
                    mtimes[path] = 0
                data, perr = _parse_document(path, self.max_file_size_bytes)
                if perr is not None:
                    errors.append(perr)
                    continue
                if not isinstance(data, dict):
                    errors.append(RecipeError(file_path=path, error="document root must be a mapping", error_type="schema_validation"))
                    continue
                try:
                    recipe = RecipeDefinition.model_validate(data)
                except ValidationError as e:
                    errors.append(RecipeError(file_path=path, error=str(e), error_type="schema_validation"))
                    continue
                parsed.append((path, recipe))
                id_to_files.setdefault(recipe.id, []).append(path)

            duplicates = {rid: paths for rid, paths in id_to_files.items() if len(paths) > 1}
            for rid, paths in duplicates.items():
                errors.append(RecipeError(file_path=paths[0], error=f"duplicate id '{rid}' defined in: {paths}", error_type="cross_file_validation"))

            out: List[RecipeDefinition] = []
            for path, recipe in parsed:
                if recipe.id in duplicates:
                    continue
                block = False

                for dup in _duplicate_sibling_ids(recipe.option_settings):
                    errors.append(RecipeError(file_path=path, error=f"duplicate option setting id '{dup}'", error_type="schema_validation"))
                    block = True

                for cycle in detect_cycles(build_dependency_graph(recipe.option_settings)):
                    errors.append(RecipeError(file_path=path, error=f"option setting dependency cycle detected: {' -> '.join(cycle)}", error_type="cross_file_validation"))
                    block = True

                for msg in validate_recipe(recipe):
                    errors.append(RecipeError(file_path=path, error=msg, error_type="semantic_validation"))
                    if self.strict:
                        block = True

                if block:
                    logger.warning("catalog.recipe_excluded recipe=%s file=%s", recipe.id, path)
                    continue
                out.append(recipe)

            self._recipes = out
            self._errors = errors
            self._mtimes = mtimes
            self._loaded = True

            outcome = "ok" if not errors else "with_errors"
            metrics.record_catalog_load(outcome, len(out), len(errors))
            metrics.CATALOG_LOAD_DURATION.observe(time.perf_counter() - started)
            logger.info(
                "catalog.loaded recipes=%d errors=%d files=%d strict=%s",
                len(out),
                len(errors),
                len(files),
                self.strict,
            )
            return self.snapshot()


def load_recipe_definitions(paths: Iterable[str]) -> List[RecipeDefinition]:
    """One-shot load: the valid recipe definitions found under ``paths``."""
    catalog = RecipeCatalog(paths)
    recipes, _ = catalog.ensure_loaded(force=True)
    return recipes


def load_catalog(paths: Optional[Iterable[str]] = None) -> RecipeCatalog:
    catalog = RecipeCatalog(paths)
    catalog.ensure_loaded(force=True)
    return catalog
