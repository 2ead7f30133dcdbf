"""Sandboxed compiler: widget source text -> component callable.

Pipeline: strip fences, dedent, rewrite ``export default`` sugar, ``ast.parse``,
static checks, then ``exec`` in a namespace whose builtins are a fixed safe
subset and whose ``__import__`` only serves the capability table plus the
caller's host scope.

``compile_component`` never raises; every failure comes back as
``CompilationResult(error=...)``.
"""

import ast
import builtins
import datetime
import logging
import math
import random
import re
import sys
import textwrap
import time
from contextlib import contextmanager
from types import ModuleType
from typing import Any, Iterator, Optional

from ouroboros.config import config
from ouroboros.exceptions import SandboxError
from ouroboros.runtime.capabilities import build_capabilities
from ouroboros.types import CompilationResult

logger = logging.getLogger(__name__)

DEFAULT_EXPORT = "default"
WIDGET_FILENAME = "<widget>"
MISSING_DEFAULT = "The generated code did not export a default component."

_FENCE_OPEN = re.compile(r"^\s*```[\w+-]*[ \t]*\n")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_EXPORT_DEF = re.compile(r"^export\s+default\s+((?:async\s+)?def|class)\s+(\w+)", re.MULTILINE)
_EXPORT_EXPR = re.compile(r"^export\s+default\s+(.+)$", re.MULTILINE)
_FORMAT_DUNDER = re.compile(r"\{[^}]*__")

# Frame / code objects reachable without dunders.
_FORBIDDEN_ATTRS = frozenset({
    "gi_frame", "gi_code", "gi_yieldfrom", "cr_frame", "cr_code", "cr_await",
    "ag_frame", "ag_code", "f_globals", "f_locals", "f_builtins", "f_back",
    "f_code", "tb_frame", "tb_next", "format_map", "mro",
})

# Mistakes generated code makes often enough to deserve a pointed message.
_IMPORT_HINTS = {
    "requests": "There is no network access; generate realistic mock data instead.",
    "httpx": "There is no network access; generate realistic mock data instead.",
    "urllib": "There is no network access; generate realistic mock data instead.",
    "os": "There is no filesystem or process access inside a widget.",
    "sys": "There is no interpreter access inside a widget.",
    "subprocess": "There is no filesystem or process access inside a widget.",
    "framer_motion": "Animations come from element props (e.g. animate='pulse'), not a library.",
    "react": "Build elements with the 'ui' module; there is no React runtime.",
}

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "hash", "int",
    "isinstance", "issubclass", "iter", "len", "list", "map", "max", "min",
    "next", "ord", "pow", "print", "range", "repr", "reversed", "round", "set",
    "slice", "sorted", "str", "sum", "tuple", "zip", "staticmethod",
    "classmethod", "property", "super", "object",
    "Exception", "ValueError", "TypeError", "KeyError", "IndexError",
    "AttributeError", "ZeroDivisionError", "RuntimeError", "StopIteration",
    "NotImplementedError", "ArithmeticError", "LookupError",
    "True", "False", "None",
)

SAFE_BUILTINS = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}
# class statements compile to __build_class__ calls
SAFE_BUILTINS["__build_class__"] = builtins.__build_class__

# ast.TryStar exists from 3.11 on
_TRY_NODES = tuple(t for t in (getattr(ast, "Try", None), getattr(ast, "TryStar", None)) if t)


# ── Execution budget ──────────────────────────────────────────────────────────


class ExecutionBudgetExceeded(BaseException):
    """Widget code ran past its time budget.

    Derives from BaseException so a widget's ``except Exception`` cannot catch it.
    """


@contextmanager
def execution_budget(seconds: Optional[float]) -> Iterator[None]:
    """Abort widget code still running *seconds* after entry.

    A line tracer is installed for frames compiled from widget source only;
    host and library frames run untraced. The previous tracer is restored on
    exit. Loops inside C builtins (``sum(range(10**12))``) emit no line
    events and are not interrupted.
    """
    if not seconds or seconds <= 0:
        yield
        return
    deadline = time.monotonic() + seconds

    def _local(frame, event, arg):
        if event == "line" and time.monotonic() > deadline:
            raise ExecutionBudgetExceeded(f"Widget code exceeded its {seconds:g}s execution budget")
        return _local

    def _global(frame, event, arg):
        return _local if frame.f_code.co_filename == WIDGET_FILENAME else None

    previous = sys.gettrace()
    sys.settrace(_global)
    try:
        yield
    finally:
        sys.settrace(previous)


def _public(module: ModuleType, name: str, names=None) -> ModuleType:
    wrapped = ModuleType(name)
    for key in names or getattr(module, "__all__", None) or dir(module):
        if not key.startswith("_") and hasattr(module, key):
            setattr(wrapped, key, getattr(module, key))
    return wrapped


def _preloaded() -> dict[str, ModuleType]:
    return {
        "math": _public(math, "math"),
        "random": _public(random, "random"),
        "datetime": _public(datetime, "datetime"),
        "time": _public(time, "time", ("time", "monotonic", "perf_counter", "localtime",
                                       "gmtime", "strftime", "mktime", "timezone")),
    }


# ── Transpile ─────────────────────────────────────────────────────────────────


def strip_fences(source: str) -> str:
    """Remove a surrounding ```python ... ``` fence if present."""
    text = source.strip("\n")
    text = _FENCE_OPEN.sub("", text, count=1)
    return _FENCE_CLOSE.sub("", text)


def transpile(source: str) -> ast.Module:
    """Turn widget source into a checked AST.

    Raises:
        SandboxError: syntax errors or sandbox contract violations.
    """
    text = textwrap.dedent(strip_fences(source))

    exported: list[str] = []

    def _mark_def(match: re.Match) -> str:
        exported.append(match.group(2))
        return f"{match.group(1)} {match.group(2)}"

    text = _EXPORT_DEF.sub(_mark_def, text)
    text = _EXPORT_EXPR.sub(lambda m: f"{DEFAULT_EXPORT} = {m.group(1).rstrip(';').strip()}", text)
    if exported:
        text += f"\n{DEFAULT_EXPORT} = {exported[-1]}\n"

    try:
        tree = ast.parse(text, filename=WIDGET_FILENAME)
    except SyntaxError as exc:
        raise SandboxError(f"Syntax error on line {exc.lineno}: {exc.msg}") from exc

    check_tree(tree)
    return tree


def _check_attr_name(name: str) -> None:
    if name.startswith("_") or name in _FORBIDDEN_ATTRS:
        raise SandboxError(f"Access to attribute '{name}' is not allowed")


def _exits_finally(node: ast.AST) -> bool:
    """True if a ``finally`` body contains return/break/continue, which would discard an exception."""
    for body_node in node.finalbody:
        for inner in ast.walk(body_node):
            if isinstance(inner, (ast.Return, ast.Break, ast.Continue)):
                return True
    return False


def check_tree(tree: ast.AST) -> None:
    """Reject dunder access, private attributes, relative imports and dunder format fields.

    Also rejects the constructs that can swallow the execution-budget abort:
    bare ``except:`` and ``finally`` blocks that return, break or continue.
    """
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            _check_attr_name(node.attr)
            if node.attr == "format" and not isinstance(node.value, ast.Constant):
                raise SandboxError("str.format is only allowed on string literals; use f-strings")
        elif isinstance(node, ast.Name):
            if node.id.startswith("__"):
                raise SandboxError(f"Use of name '{node.id}' is not allowed")
        elif isinstance(node, ast.Constant) and isinstance(node.value, str):
            if _FORMAT_DUNDER.search(node.value):
                raise SandboxError("Format strings may not reference dunder attributes")
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                raise SandboxError("Relative imports are not available in widgets")
            for alias in node.names:
                if alias.name.startswith("_"):
                    raise SandboxError(f"Cannot import private name '{alias.name}'")
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            if node.name.startswith("__") and node.name.endswith("__") and node.name != "__init__":
                raise SandboxError(f"Defining '{node.name}' is not allowed")
        elif isinstance(node, (ast.Global, ast.Nonlocal)) and any(n.startswith("__") for n in node.names):
            raise SandboxError("Rebinding dunder names is not allowed")
        elif isinstance(node, ast.MatchClass):
            # keyword patterns read attributes: case C(attr=x)
            for name in node.kwd_attrs:
                _check_attr_name(name)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name and node.name.startswith("__"):
            raise SandboxError(f"Use of name '{node.name}' is not allowed")
        elif isinstance(node, ast.MatchMapping) and node.rest and node.rest.startswith("__"):
            raise SandboxError(f"Use of name '{node.rest}' is not allowed")
        elif isinstance(node, ast.ExceptHandler) and node.type is None:
            raise SandboxError("Bare 'except:' is not allowed; catch Exception instead")
        elif isinstance(node, _TRY_NODES) and _exits_finally(node):
            raise SandboxError("'finally' blocks may not return, break or continue")


# ── Module resolution ─────────────────────────────────────────────────────────


class ModuleResolver:
    """``__import__`` replacement over an explicit name -> module table."""

    def __init__(self, table: dict[str, Any]) -> None:
        self.table = table

    def available(self) -> list[str]:
        return sorted(self.table)

    def resolve(self, name: str) -> Any:
        if name in self.table:
            return self.table[name]
        hint = _IMPORT_HINTS.get(name.split(".")[0], "")
        message = (
            f"Module '{name}' is not available in the Ouroboros runtime. "
            f"Available: {', '.join(self.available())}"
        )
        raise SandboxError(f"{message}. {hint}" if hint else message)

    def __call__(self, name, globals=None, locals=None, fromlist=(), level=0):
        if level:
            raise SandboxError("Relative imports are not available in widgets")
        module = self.resolve(name)
        if fromlist or "." not in name:
            return module
        # ``import dnd.core`` binds the top-level package
        return self.resolve(name.split(".")[0])


# ── Compile ───────────────────────────────────────────────────────────────────


def build_namespace(host_scope: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    table: dict[str, Any] = build_capabilities()
    table.update(host_scope or {})
    resolver = ModuleResolver(table)
    namespace: dict[str, Any] = {
        "__builtins__": {**SAFE_BUILTINS, "__import__": resolver},
        "__name__": "widget",
    }
    namespace.update(_preloaded())
    return namespace


def compile_component(
    source_text: str,
    host_scope: Optional[dict[str, Any]] = None,
    time_limit: Optional[float] = None,
) -> CompilationResult:
    """Compile widget source into a component callable.

    Args:
        source_text: Widget module source, possibly fenced or using ``export default``.
        host_scope:  Extra importable modules (normally ``{"ouroboros": bridge_module}``);
                     entries override capability modules of the same name.
        time_limit:  Seconds the module body may run. Defaults to
                     ``config.sandbox_max_execution_seconds``; 0 disables the budget.

    Returns:
        CompilationResult with exactly one of ``component`` / ``error`` set.
    """
    limit = config.sandbox_max_execution_seconds if time_limit is None else time_limit
    try:
        tree = transpile(source_text or "")
        namespace = build_namespace(host_scope)
        code = compile(tree, WIDGET_FILENAME, "exec")
        with execution_budget(limit):
            exec(code, namespace)
    except SandboxError as exc:
        return CompilationResult.failed(str(exc))
    except ExecutionBudgetExceeded as exc:
        logger.warning("Widget module body stopped: %s", exc)
        return CompilationResult.failed(str(exc))
    except Exception as exc:  # widget module body raised
        logger.debug("Widget module evaluation failed", exc_info=True)
        return CompilationResult.failed(f"{type(exc).__name__}: {exc}")

    component = namespace.get(DEFAULT_EXPORT)
    if component is None:
        return CompilationResult.failed(MISSING_DEFAULT)
    if not callable(component):
        return CompilationResult.failed(
            f"The default export is a {type(component).__name__}, not a component function."
        )
    return CompilationResult.ok(component)
