from __future__ import annotations

import ast
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
BROAD_EXCEPTION_NAMES = {"Exception", "BaseException"}
DIRECT_EXCEPTION_LOGGERS = {"logger", "LOGGER", "logging"}


def _parsed_sources() -> list[tuple[str, str, ast.Module]]:
    return [
        (
            path.relative_to(SRC_ROOT).as_posix(),
            path.read_text(encoding="utf-8"),
            ast.parse(path.read_text(encoding="utf-8")),
        )
        for path in sorted(SRC_ROOT.rglob("*.py"))
    ]


def _handler_names(handler: ast.ExceptHandler) -> list[str]:
    if handler.type is None:
        return []
    candidates = handler.type.elts if isinstance(handler.type, ast.Tuple) else [handler.type]
    return [node.id for node in candidates if isinstance(node, ast.Name)]


def test_exceptions_are_logged_through_log_exception() -> None:
    violations = [
        f"{relative_path}:{node.lineno}"
        for relative_path, _source, tree in _parsed_sources()
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr == "exception"
        and isinstance(node.func.value, ast.Name)
        and node.func.value.id in DIRECT_EXCEPTION_LOGGERS
    ]

    assert not violations, "\n".join(violations)


def test_no_bare_or_broad_exception_handlers() -> None:
    violations: list[str] = []
    for relative_path, _source, tree in _parsed_sources():
        for node in ast.walk(tree):
            if not isinstance(node, ast.ExceptHandler):
                continue
            if node.type is None:
                violations.append(f"{relative_path}:{node.lineno}: bare except")
            broad = BROAD_EXCEPTION_NAMES.intersection(_handler_names(node))
            if broad:
                violations.append(
                    f"{relative_path}:{node.lineno}: except {', '.join(sorted(broad))}",
                )

    assert not violations, "\n".join(violations)


def test_no_ble001_noqa_markers() -> None:
    violations = [
        relative_path
        for relative_path, source, _tree in _parsed_sources()
        if "noqa: BLE001" in source
    ]

    assert not violations, "\n".join(violations)


def test_no_print_calls() -> None:
    violations = [
        f"{relative_path}:{node.lineno}"
        for relative_path, _source, tree in _parsed_sources()
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "print"
    ]

    assert not violations, "\n".join(violations)
