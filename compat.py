from __future__ import annotations

import ast
import importlib.util
import pkgutil

# Python 3.14 removed these; Werkzeug and Flask still look some of them up.
_LEGACY_AST_NODES = ("Str", "Bytes", "Num", "NameConstant")
_LEGACY_CONSTANT_ATTRS = ("s", "n")


def _constant_value_property() -> property:
    def _get(self):
        return self.value

    def _set(self, value):
        self.value = value

    return property(_get, _set)


def _get_loader(name: str):
    try:
        spec = importlib.util.find_spec(name)
    except (ValueError, ImportError):
        return None
    return spec.loader if spec else None


def apply_runtime_patches() -> None:
    for node_name in _LEGACY_AST_NODES:
        if not hasattr(ast, node_name):
            setattr(ast, node_name, ast.Constant)

    for attr in _LEGACY_CONSTANT_ATTRS:
        if not hasattr(ast.Constant, attr):
            setattr(ast.Constant, attr, _constant_value_property())

    if not hasattr(pkgutil, "get_loader"):
        pkgutil.get_loader = _get_loader  # type: ignore[attr-defined]
