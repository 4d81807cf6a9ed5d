"""qualifiers_order/config.py – S-expression configuration file.

A configuration file holds one ``(qualifiers-order ...)`` form whose
children are ``(option value...)`` lists::

    ;; .qualifiers-order
    (qualifiers-order
      (alignment Right)
      (qualifier volatile)
      (check-parameters false)
      (check-template-arguments true)
      (suppress "legacy/*.c" "third_party/**"))

Option names and enumerated values are case-insensitive.  Unknown
options are errors, not warnings: a typo in a config file should not
silently change what the check enforces.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import sexpdata
from sexpdata import Symbol

from qualifiers_order.errors import ConfigError
from qualifiers_order.planner import QualifierAlignment
from qualifiers_order.types import Qualifier

logger = logging.getLogger(__name__)

CONFIG_TAG = "qualifiers-order"
DEFAULT_CONFIG_NAME = ".qualifiers-order"

Sexp = Any


@dataclass(frozen=True)
class QualifiersOrderConfig:
    """Effective options of one run."""

    alignment: QualifierAlignment = QualifierAlignment.LEFT
    qualifier: Qualifier = Qualifier.CONST
    check_parameters: bool = True
    check_template_arguments: bool = True
    suppressions: Tuple[str, ...] = field(default_factory=tuple)

    def is_suppressed(self, path: Union[str, Path]) -> bool:
        """True if *path* matches one of the ``suppress`` globs."""
        name = Path(path).as_posix()
        return any(
            fnmatch.fnmatch(name, pat) or fnmatch.fnmatch(Path(name).name, pat)
            for pat in self.suppressions
        )

    def merged(self, **overrides: Any) -> "QualifiersOrderConfig":
        """Copy with every non-``None`` override applied (CLI flags win)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    if isinstance(s, Symbol):
        return s.value()
    raise ConfigError(f"expected symbol, got {type(s).__name__}: {s!r}")


def _as_str(s: Sexp) -> str:
    if isinstance(s, Symbol):
        return s.value()
    if isinstance(s, str):
        return s
    raise ConfigError(f"expected string or symbol, got {type(s).__name__}: {s!r}")


def _as_bool(s: Sexp) -> bool:
    if isinstance(s, bool):
        return s
    if isinstance(s, Symbol):
        v = s.value().lower()
        if v in ("true", "#t", "t", "yes", "on"):
            return True
        if v in ("false", "#f", "nil", "no", "off"):
            return False
    raise ConfigError(f"expected boolean, got {s!r}")


def _single(name: str, values: list) -> Sexp:
    if len(values) != 1:
        raise ConfigError(f"option '{name}' takes exactly one value, got {len(values)}")
    return values[0]


# ═══════════════════════════════════════════════════════════════════════
#  Option handlers
# ═══════════════════════════════════════════════════════════════════════

def _opt_alignment(values: list) -> Dict[str, Any]:
    raw = _as_str(_single("alignment", values))
    try:
        return {"alignment": QualifierAlignment.from_string(raw)}
    except ValueError as exc:
        raise ConfigError(str(exc), cause=exc) from exc


def _opt_qualifier(values: list) -> Dict[str, Any]:
    raw = _as_str(_single("qualifier", values))
    try:
        return {"qualifier": Qualifier.from_string(raw)}
    except ValueError as exc:
        raise ConfigError(str(exc), cause=exc) from exc


def _opt_check_parameters(values: list) -> Dict[str, Any]:
    return {"check_parameters": _as_bool(_single("check-parameters", values))}


def _opt_check_template_arguments(values: list) -> Dict[str, Any]:
    return {"check_template_arguments": _as_bool(_single("check-template-arguments", values))}


def _opt_suppress(values: list) -> Dict[str, Any]:
    if not values:
        raise ConfigError("option 'suppress' needs at least one pattern")
    return {"suppressions": tuple(_as_str(v) for v in values)}


_OPTIONS: Dict[str, Callable[[list], Dict[str, Any]]] = {
    "alignment": _opt_alignment,
    "qualifier": _opt_qualifier,
    "check-parameters": _opt_check_parameters,
    "check-template-arguments": _opt_check_template_arguments,
    "suppress": _opt_suppress,
}


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def parse_config(text: str, filename: str = "<string>") -> QualifiersOrderConfig:
    """Parse configuration text; raises :class:`ConfigError` on any problem."""
    try:
        raw = sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise ConfigError(f"{filename}: S-expression syntax error: {exc}", cause=exc) from exc

    if not isinstance(raw, list) or not raw:
        raise ConfigError(f"{filename}: expected ({CONFIG_TAG} ...)")
    if _sym_name(raw[0]).lower() != CONFIG_TAG:
        raise ConfigError(f"{filename}: expected ({CONFIG_TAG} ...), got ({raw[0]} ...)")

    settings: Dict[str, Any] = {}
    suppressions: Tuple[str, ...] = ()
    for item in raw[1:]:
        if not isinstance(item, list) or not item:
            raise ConfigError(f"{filename}: expected (option value...), got {item!r}")
        name = _sym_name(item[0]).lower()
        handler = _OPTIONS.get(name)
        if handler is None:
            raise ConfigError(
                f"{filename}: unknown option '{name}'",
                hint="known options: " + ", ".join(sorted(_OPTIONS)),
            )
        values = handler(item[1:])
        # Repeated ``suppress`` forms accumulate; anything else overrides.
        if "suppressions" in values:
            suppressions += values.pop("suppressions")
        settings.update(values)
    if suppressions:
        settings["suppressions"] = suppressions

    config = QualifiersOrderConfig(**settings)
    logger.debug("%s: %s", filename, config)
    return config


def load_config(path: Union[str, Path]) -> QualifiersOrderConfig:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {p}: {exc}", cause=exc) from exc
    return parse_config(text, filename=str(p))


def find_config(start: Union[str, Path]) -> Optional[Path]:
    """Nearest ``.qualifiers-order`` in *start* or one of its parents."""
    here = Path(start).resolve()
    if here.is_file():
        here = here.parent
    for directory in (here, *here.parents):
        candidate = directory / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


__all__ = [
    "CONFIG_TAG",
    "DEFAULT_CONFIG_NAME",
    "QualifiersOrderConfig",
    "parse_config",
    "load_config",
    "find_config",
]
