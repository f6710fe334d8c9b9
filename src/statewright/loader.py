"""Load specifications from YAML documents.

A document has the mapping layout accepted by
:func:`statewright.spec.builder.build_specification`, for example::

    name: article
    states:
      new:
        events:
          submit: awaiting_review
      awaiting_review:
        events:
          review: being_reviewed
      being_reviewed:
        events:
          - {name: accept, to: accepted, guard: has_two_approvals}
          - {name: reject, to: rejected}
      accepted: {}
      rejected: {}

Documents are validated against ``schemas/specification.schema.yaml``
before they are compiled. Configuration may hold several documents under
``statemachine:`` keyed by machine name.
"""
from __future__ import annotations

import logging
import weakref
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft202012Validator

from .config import StatewrightConfig, read_yaml_file
from .data import read_yaml
from .exceptions import ConfigError
from .handlers.registries import ActionRegistry, GuardRegistry, action_registry, guard_registry
from .spec.builder import build_specification
from .spec.model import Specification

logger = logging.getLogger(__name__)

SCHEMA_FILE = "specification.schema.yaml"


def _format_error_path(path: Any) -> str:
    parts = [str(p) for p in path]
    return "/".join(parts) if parts else "<root>"


def validate_document(document: Any, *, source: Optional[str] = None) -> None:
    """Raise ConfigError listing every schema violation in ``document``."""
    schema = read_yaml("schemas", SCHEMA_FILE)
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(document), key=lambda e: list(e.path))
    if not errors:
        return
    lines: List[str] = [f"{_format_error_path(e.path)}: {e.message}" for e in errors]
    where = f" in {source}" if source else ""
    raise ConfigError(
        f"Invalid specification document{where}:\n  " + "\n  ".join(lines),
        context={"source": source, "errors": lines},
    )


def load_specification_document(path: Path) -> Dict[str, Any]:
    """Read a YAML specification document (not validated)."""
    return read_yaml_file(Path(path))


def build_from_document(
    name: str,
    document: Mapping[str, Any],
    *,
    guards: Optional[GuardRegistry] = None,
    actions: Optional[ActionRegistry] = None,
    validate: bool = True,
    source: Optional[str] = None,
) -> Specification:
    """Validate (optionally) and compile one document into a Specification."""
    if validate:
        validate_document(document, source=source or name)
    return build_specification(document, name=name, guards=guards, actions=actions)


def load_specification(
    path: Path,
    *,
    name: Optional[str] = None,
    guards: Optional[GuardRegistry] = None,
    actions: Optional[ActionRegistry] = None,
    validate: bool = True,
) -> Specification:
    """Read, validate and compile the document at ``path``.

    The machine name defaults to the document's ``name`` key, then the file stem.
    """
    path = Path(path)
    document = load_specification_document(path)
    machine_name = name or document.get("name") or path.stem
    logger.debug("Loading specification %s from %s", machine_name, path)
    return build_from_document(
        str(machine_name),
        document,
        guards=guards,
        actions=actions,
        validate=validate,
        source=str(path),
    )


# config -> guard registry -> action registry -> compiled specs
_LOADED: "weakref.WeakKeyDictionary[StatewrightConfig, weakref.WeakKeyDictionary]" = weakref.WeakKeyDictionary()


def load_specifications(
    config: Optional[StatewrightConfig] = None,
    *,
    guards: Optional[GuardRegistry] = None,
    actions: Optional[ActionRegistry] = None,
) -> Dict[str, Specification]:
    """Compile every document under ``statemachine:``, cached per config object."""
    cfg = config if config is not None else StatewrightConfig()
    guards = guards if guards is not None else guard_registry
    actions = actions if actions is not None else action_registry
    per_guards = _LOADED.setdefault(cfg, weakref.WeakKeyDictionary()).setdefault(guards, weakref.WeakKeyDictionary())
    cached = per_guards.get(actions)
    if cached is not None:
        return dict(cached)

    specs: Dict[str, Specification] = {}
    for machine_name, document in cfg.statemachine.items():
        if not isinstance(document, Mapping):
            raise ConfigError(
                f"State machine '{machine_name}' must be a mapping",
                context={"machine": machine_name},
            )
        specs[str(machine_name)] = build_from_document(
            str(machine_name),
            document,
            guards=guards,
            actions=actions,
            validate=cfg.validate_documents,
        )
    logger.debug("Loaded %d specification(s) from configuration", len(specs))
    per_guards[actions] = specs
    return dict(specs)


__all__ = [
    "validate_document",
    "load_specification_document",
    "build_from_document",
    "load_specification",
    "load_specifications",
]
