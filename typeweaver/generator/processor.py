"""Extended template processor built on the ``{{NAME}}`` placeholder syntax.

Supported directives, expanded in this order on every pass:

- ``{{! comment }}`` is stripped, with its line when it stands alone
- ``{{INCLUDE:path}}`` is replaced by the processed template at ``path``
- ``{{#FOREACH col AS item}}...{{/FOREACH}}`` repeats its body per element
- ``{{#IF cond}}...{{#ELSE}}...{{/IF}}`` keeps one branch
- ``{{CALL:name(arg, ...)}}`` is replaced by a registered function's result
- ``{{name}}`` / ``{{dotted.path}}`` is replaced by the variable's value

Processing never raises: a malformed directive is left in the output as is.
"""

import os
import re
from collections.abc import Mapping
from typing import Any

from lark import Lark, Token
from lark.exceptions import LarkError
from lark.visitors import Transformer

from .context import ContextValue, RenderContext, is_truthy, render_value
from .functions import FunctionRegistry, default_functions
from .log import get_logger
from .templates import TemplateLoader

logger = get_logger("processor")

MAX_DEPTH = 32

_COMMENT = re.compile(
    r"^[ \t]*\{\{!(?:(?!\}\}).)*\}\}[ \t]*\n|\{\{!.*?\}\}", re.DOTALL | re.MULTILINE
)
_INCLUDE = re.compile(r"\{\{INCLUDE:\s*([^{}]+?)\s*\}\}")
_FOREACH_OPEN = re.compile(r"\{\{#FOREACH\s+([^{}]*?)\s*\}\}")
_FOREACH_HEADER = re.compile(r"([A-Za-z_][\w.]*)\s+AS\s+([A-Za-z_]\w*)")
_IF_OPEN = re.compile(r"\{\{#IF\s+([^{}]*?)\s*\}\}")
_BLOCK_TAG = re.compile(r"\{\{(#FOREACH\b[^{}]*|/FOREACH|#IF\b[^{}]*|#ELSE|/IF)\}\}")
_CALL = re.compile(r"\{\{CALL:([A-Za-z_]\w*)\((.*?)\)\}\}")
_VARIABLE = re.compile(r"\{\{\s*([A-Za-z_]\w*(?:\.\w+)*)\s*\}\}")
_NUMBER = re.compile(r"-?\d+(\.\d+)?")
_PATH = re.compile(r"[A-Za-z_]\w*(?:\.\w+)*")

_g_condition_parser: Lark | None = None


def _condition_parser() -> Lark:
    global _g_condition_parser

    if not _g_condition_parser:
        with open(f"{os.path.dirname(__file__)}/condition.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_condition_parser = Lark(grammar, parser="lalr")
    return _g_condition_parser


def _as_number(value: ContextValue | None) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str) and _NUMBER.fullmatch(value.strip()):
        return float(value)
    return None


def _equals(a: ContextValue | None, b: ContextValue | None) -> bool:
    num_a, num_b = _as_number(a), _as_number(b)
    if num_a is not None and num_b is not None:
        return num_a == num_b
    return render_value(a) == render_value(b)


class ConditionEvaluator(Transformer):
    """Evaluate a parsed condition against a render context."""

    def __init__(self, context: RenderContext):
        super().__init__()
        self.context = context

    def string(self, args: list[Token]) -> str:
        return str(args[0])[1:-1]

    def number(self, args: list[Token]) -> int | float:
        value = float(args[0])
        return int(value) if value.is_integer() else value

    def path(self, args: list[Token]) -> ContextValue | None:
        name = str(args[0])
        if name == "true":
            return True
        if name == "false":
            return False
        return self.context.lookup(name)

    def eq(self, args: list[Any]) -> bool:
        return _equals(args[0], args[2])

    def ne(self, args: list[Any]) -> bool:
        return not _equals(args[0], args[2])

    def not_op(self, args: list[Any]) -> bool:
        return not is_truthy(args[1])

    def and_op(self, args: list[Any]) -> bool:
        return is_truthy(args[0]) and is_truthy(args[2])

    def or_op(self, args: list[Any]) -> bool:
        return is_truthy(args[0]) or is_truthy(args[2])


def evaluate_condition(condition: str, context: RenderContext) -> bool | None:
    """Evaluate ``condition``; None if it can't be parsed."""
    try:
        tree = _condition_parser().parse(condition)
        result = ConditionEvaluator(context).transform(tree)
    except LarkError as e:
        logger.debug("Malformed condition %r: %s", condition, e)
        return None
    return is_truthy(result)


def _split_args(text: str) -> list[str]:
    """Split call arguments on commas outside of quotes."""
    if not text.strip():
        return []
    args: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch == ",":
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    args.append("".join(current).strip())
    return args


def _match_block(
    text: str, start: int, opener: str, closer: str, else_tag: str | None = None
) -> tuple[int, int, tuple[int, int] | None] | None:
    """Find the closing tag matching an opening tag that ends at ``start``.

    Returns (close_start, close_end, else_span) or None when unbalanced.
    """
    depth = 0
    else_span: tuple[int, int] | None = None
    for m in _BLOCK_TAG.finditer(text, start):
        tag = m.group(1)
        if tag.startswith(opener):
            depth += 1
        elif tag == closer:
            if depth == 0:
                return m.start(), m.end(), else_span
            depth -= 1
        elif else_tag is not None and tag == else_tag and depth == 0 and else_span is None:
            else_span = (m.start(), m.end())
    return None


class TemplateProcessor:
    """Render templates with includes, loops, conditionals and function calls."""

    def __init__(self, loader: TemplateLoader, functions: FunctionRegistry | None = None):
        self.loader = loader
        self.functions = functions if functions is not None else default_functions()

    def render(self, path: str, context: RenderContext | Mapping[str, Any] | None = None) -> str:
        """Load the template at ``path`` and render it."""
        return self.render_text(self.loader.load(path), context)

    def render_text(
        self, text: str, context: RenderContext | Mapping[str, Any] | None = None
    ) -> str:
        """Render template ``text`` against ``context``."""
        if not isinstance(context, RenderContext):
            context = RenderContext.from_mapping(context or {})
        return self._process(text, context, 0)

    def _process(self, text: str, context: RenderContext, depth: int) -> str:
        if depth > MAX_DEPTH:
            logger.warning("Template nesting deeper than %d, leaving text unexpanded", MAX_DEPTH)
            return text
        text = _COMMENT.sub("", text)
        text = _INCLUDE.sub(lambda m: self._include(m, context, depth), text)
        text = self._expand_loops(text, context, depth)
        text = self._expand_conditionals(text, context)
        text = _CALL.sub(lambda m: self._call(m, context), text)
        return _VARIABLE.sub(lambda m: self._variable(m, context), text)

    def _include(self, match: re.Match[str], context: RenderContext, depth: int) -> str:
        if depth >= MAX_DEPTH:
            logger.warning("Include depth exceeded at %s", match.group(1))
            return match.group(0)
        return self._process(self.loader.load(match.group(1)), context, depth + 1)

    def _expand_loops(self, text: str, context: RenderContext, depth: int) -> str:
        out: list[str] = []
        pos = 0
        while True:
            m = _FOREACH_OPEN.search(text, pos)
            if m is None:
                out.append(text[pos:])
                return "".join(out)

            header = _FOREACH_HEADER.fullmatch(m.group(1))
            block = _match_block(text, m.end(), "#FOREACH", "/FOREACH")
            if header is None or block is None:
                logger.debug("Malformed FOREACH %r left as text", m.group(0))
                out.append(text[pos : m.end()])
                pos = m.end()
                continue

            close_start, close_end, _ = block
            out.append(text[pos : m.start()])
            body = text[m.end() : close_start]
            out.append(self._iterate(header.group(1), header.group(2), body, context, depth))
            pos = close_end

    def _iterate(
        self, collection: str, item: str, body: str, context: RenderContext, depth: int
    ) -> str:
        value = context.lookup(collection)
        if isinstance(value, RenderContext):
            entries: list[tuple[str | None, ContextValue]] = list(value.items())
        elif isinstance(value, list):
            entries = [(None, v) for v in value]
        else:
            return ""

        parts: list[str] = []
        last = len(entries) - 1
        for index, (key, element) in enumerate(entries):
            bindings: dict[str, ContextValue] = {
                item: element,
                f"{item}_index": index,
                f"{item}_first": index == 0,
                f"{item}_last": index == last,
            }
            if key is not None:
                bindings[f"{item}_key"] = key
                bindings[f"{item}_value"] = element
            parts.append(self._process(body, context.child(**bindings), depth + 1))
        return "".join(parts)

    def _expand_conditionals(self, text: str, context: RenderContext) -> str:
        pos = 0
        while True:
            m = _IF_OPEN.search(text, pos)
            if m is None:
                return text

            block = _match_block(text, m.end(), "#IF", "/IF", "#ELSE")
            if block is None:
                logger.debug("Unbalanced IF %r left as text", m.group(0))
                pos = m.end()
                continue

            close_start, close_end, else_span = block
            result = evaluate_condition(m.group(1), context)
            if result is None:
                pos = close_end
                continue

            if else_span is not None:
                then_part = text[m.end() : else_span[0]]
                else_part = text[else_span[1] : close_start]
            else:
                then_part = text[m.end() : close_start]
                else_part = ""

            text = text[: m.start()] + (then_part if result else else_part) + text[close_end:]
            pos = m.start()

    def _call(self, match: re.Match[str], context: RenderContext) -> str:
        name = match.group(1)
        function = self.functions.get(name)
        if function is None:
            return match.group(0)

        args = [self._argument(arg, context) for arg in _split_args(match.group(2))]
        try:
            return str(function(*args))
        except Exception as e:
            logger.warning("Template function %s%r failed: %s", name, tuple(args), e)
            return match.group(0)

    def _argument(self, arg: str, context: RenderContext) -> str:
        if len(arg) >= 2 and arg[0] == arg[-1] and arg[0] in "\"'":
            return arg[1:-1]
        if _NUMBER.fullmatch(arg):
            return arg
        if not _PATH.fullmatch(arg):
            return arg
        value = context.lookup(arg)
        return render_value(value) if value is not None else ""

    def _variable(self, match: re.Match[str], context: RenderContext) -> str:
        value = context.lookup(match.group(1))
        if value is None:
            return match.group(0)
        return render_value(value)
