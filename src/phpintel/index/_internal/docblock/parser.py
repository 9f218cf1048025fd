"""Documentation comment (docblock) parsing.

Extracts the summary, long description and the tags the index cares about
from a raw ``/** ... */`` comment:

    @param, @return, @var, @throws, @deprecated, {@inheritDoc},
    @property, @property-read, @property-write, @method

Types are returned as written; see ``docblock.types`` for their structure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_TAG_LINE = re.compile(r"^@([\w-]+)\s*(.*)$", re.DOTALL)
_INHERIT_DOC = re.compile(r"\{?@inheritdoc\}?", re.IGNORECASE)

_OPENERS = {"<": ">", "(": ")", "{": "}", "[": "]"}


@dataclass
class ParamTag:
    name: str  # Includes the '$' sigil
    type: str | None = None
    description: str | None = None
    is_variadic: bool = False
    is_reference: bool = False


@dataclass
class VarTag:
    type: str
    name: str | None = None  # Includes the '$' sigil when present
    description: str | None = None


@dataclass
class ReturnTag:
    type: str
    description: str | None = None


@dataclass
class ThrowsTag:
    type: str
    description: str | None = None


@dataclass
class PropertyTag:
    name: str  # Without the '$' sigil
    type: str | None = None
    description: str | None = None
    is_static: bool = False
    is_readable: bool = True
    is_writable: bool = True


@dataclass
class MethodTagParameter:
    name: str  # Without the '$' sigil
    type: str | None = None
    default_value: str | None = None
    is_variadic: bool = False
    is_reference: bool = False


@dataclass
class MethodTag:
    name: str
    return_type: str | None = None
    is_static: bool = False
    parameters: list[MethodTagParameter] = field(default_factory=list)
    description: str | None = None


@dataclass
class Docblock:
    """Parsed documentation comment."""

    summary: str | None = None
    description: str | None = None
    is_deprecated: bool = False
    inherits_doc: bool = False
    params: dict[str, ParamTag] = field(default_factory=dict)
    vars: list[VarTag] = field(default_factory=list)
    return_tag: ReturnTag | None = None
    throws: list[ThrowsTag] = field(default_factory=list)
    properties: list[PropertyTag] = field(default_factory=list)
    methods: list[MethodTag] = field(default_factory=list)

    @property
    def has_own_documentation(self) -> bool:
        """False for blocks that only say ``{@inheritDoc}``."""
        if not self.inherits_doc:
            return True
        return bool(
            self.summary or self.params or self.vars or self.return_tag or self.throws
        )

    def var_for(self, variable: str | None) -> VarTag | None:
        """The ``@var`` tag naming ``variable``, else the first unnamed one."""
        unnamed: VarTag | None = None
        for tag in self.vars:
            if tag.name is not None and variable is not None and tag.name == variable:
                return tag
            if tag.name is None and unnamed is None:
                unnamed = tag
        return unnamed


def split_type(text: str) -> tuple[str, str]:
    """Split a leading type expression from the rest of a tag body.

    Whitespace inside ``<>``, ``()``, ``{}`` and ``[]`` does not end the type,
    so ``array<string, int> $map`` yields ``("array<string, int>", "$map")``.
    """
    text = text.strip()
    depth: list[str] = []
    for i, ch in enumerate(text):
        if ch in _OPENERS:
            depth.append(_OPENERS[ch])
        elif depth and ch == depth[-1]:
            depth.pop()
        elif ch.isspace() and not depth:
            # Allow spaces around union separators: "int | string"
            rest = text[i:].lstrip()
            if rest.startswith("|") or text[:i].endswith("|"):
                continue
            return text[:i], rest
    return text, ""


def _split_words(text: str, count: int) -> list[str]:
    """Split into at most ``count`` parts; the remainder goes to the last part."""
    parts = text.split(None, count - 1)
    return parts + [""] * (count - len(parts))


def _clean_description(text: str) -> str | None:
    text = text.strip()
    return text or None


class DocblockParser:
    """Parses raw docblock comments. Stateless and safe to share."""

    def parse(self, raw: str | None) -> Docblock:
        if not raw:
            return Docblock()

        lines = self._strip_comment(raw)
        text_lines: list[str] = []
        tags: list[str] = []
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("@"):
                tags.append(stripped)
            elif tags:
                tags[-1] = f"{tags[-1]}\n{stripped}" if stripped else tags[-1]
            else:
                text_lines.append(line.rstrip())

        docblock = Docblock()
        self._parse_text(text_lines, docblock)
        for tag in tags:
            self._parse_tag(tag, docblock)
        return docblock

    @staticmethod
    def _strip_comment(raw: str) -> list[str]:
        body = raw.strip()
        if body.startswith("/**"):
            body = body[3:]
        elif body.startswith("/*"):
            body = body[2:]
        if body.endswith("*/"):
            body = body[:-2]

        result: list[str] = []
        for line in body.splitlines():
            line = line.strip()
            if line.startswith("*"):
                line = line[1:]
                if line.startswith(" "):
                    line = line[1:]
            result.append(line)
        return result

    @staticmethod
    def _parse_text(lines: list[str], docblock: Docblock) -> None:
        while lines and not lines[0].strip():
            lines.pop(0)

        summary: list[str] = []
        index = 0
        while index < len(lines) and lines[index].strip():
            summary.append(lines[index].strip())
            index += 1

        long_lines = lines[index:]
        summary_text = " ".join(summary)
        description_text = "\n".join(long_lines).strip()

        if _INHERIT_DOC.search(summary_text):
            docblock.inherits_doc = True
            summary_text = _INHERIT_DOC.sub("", summary_text).strip()
        if _INHERIT_DOC.search(description_text):
            docblock.inherits_doc = True
            description_text = _INHERIT_DOC.sub("", description_text).strip()

        docblock.summary = summary_text or None
        docblock.description = description_text or None

    def _parse_tag(self, tag: str, docblock: Docblock) -> None:
        match = _TAG_LINE.match(tag)
        if match is None:
            return
        name = match.group(1).lower()
        body = " ".join(match.group(2).split())

        if name == "param":
            param = self._parse_param(body)
            if param is not None:
                docblock.params[param.name] = param
        elif name == "var":
            var = self._parse_var(body)
            if var is not None:
                docblock.vars.append(var)
        elif name == "return":
            type_, rest = split_type(body)
            if type_:
                docblock.return_tag = ReturnTag(type=type_, description=_clean_description(rest))
        elif name == "throws":
            type_, rest = split_type(body)
            if type_:
                docblock.throws.append(ThrowsTag(type=type_, description=_clean_description(rest)))
        elif name == "deprecated":
            docblock.is_deprecated = True
        elif name == "inheritdoc":
            docblock.inherits_doc = True
        elif name in ("property", "property-read", "property-write"):
            prop = self._parse_property(body, name)
            if prop is not None:
                docblock.properties.append(prop)
        elif name == "method":
            method = self._parse_method(body)
            if method is not None:
                docblock.methods.append(method)

    @staticmethod
    def _parse_variable_token(token: str) -> tuple[str, bool, bool] | None:
        """``&...$name`` -> (``$name``, is_variadic, is_reference)."""
        is_reference = False
        is_variadic = False
        if token.startswith("&"):
            is_reference = True
            token = token[1:]
        if token.startswith("..."):
            is_variadic = True
            token = token[3:]
        if not token.startswith("$") or len(token) < 2:
            return None
        return token.rstrip(",;"), is_variadic, is_reference

    def _parse_param(self, body: str) -> ParamTag | None:
        if not body:
            return None
        type_: str | None = None
        if body.lstrip("&.").startswith("$"):
            var_token, rest = _split_words(body, 2)
        else:
            type_, remainder = split_type(body)
            var_token, rest = _split_words(remainder, 2)

        parsed = self._parse_variable_token(var_token)
        if parsed is None:
            return None
        name, is_variadic, is_reference = parsed
        return ParamTag(
            name=name,
            type=type_,
            description=_clean_description(rest),
            is_variadic=is_variadic,
            is_reference=is_reference,
        )

    @staticmethod
    def _parse_var(body: str) -> VarTag | None:
        if not body:
            return None
        if body.startswith("$"):
            # "@var $name Type" ordering
            var_name, rest = _split_words(body, 2)
            type_, description = split_type(rest)
            if not type_:
                return None
            return VarTag(type=type_, name=var_name, description=_clean_description(description))

        type_, rest = split_type(body)
        name: str | None = None
        if rest.startswith("$"):
            name, rest = _split_words(rest, 2)
        return VarTag(type=type_, name=name, description=_clean_description(rest))

    def _parse_property(self, body: str, tag: str) -> PropertyTag | None:
        is_static = False
        if body.startswith("static "):
            is_static = True
            body = body[len("static ") :]

        type_: str | None = None
        if not body.startswith("$"):
            type_, body = split_type(body)
        var_token, rest = _split_words(body, 2)
        if not var_token.startswith("$") or len(var_token) < 2:
            return None
        return PropertyTag(
            name=var_token[1:],
            type=type_,
            description=_clean_description(rest),
            is_static=is_static,
            is_readable=tag != "property-write",
            is_writable=tag != "property-read",
        )

    def _parse_method(self, body: str) -> MethodTag | None:
        open_paren = body.find("(")
        if open_paren < 0:
            return None
        close_paren = self._matching_paren(body, open_paren)
        if close_paren < 0:
            return None

        head = body[:open_paren].split()
        if not head:
            return None
        name = head[-1]
        qualifiers = head[:-1]

        is_static = False
        return_type: str | None = None
        if qualifiers and qualifiers[0].lower() == "static" and len(qualifiers) > 1:
            is_static = True
            qualifiers = qualifiers[1:]
        if qualifiers:
            return_type = " ".join(qualifiers)

        params_text = body[open_paren + 1 : close_paren]
        return MethodTag(
            name=name,
            return_type=return_type,
            is_static=is_static,
            parameters=self._parse_method_parameters(params_text),
            description=_clean_description(body[close_paren + 1 :]),
        )

    @staticmethod
    def _matching_paren(text: str, start: int) -> int:
        depth = 0
        for i in range(start, len(text)):
            if text[i] == "(":
                depth += 1
            elif text[i] == ")":
                depth -= 1
                if depth == 0:
                    return i
        return -1

    def _parse_method_parameters(self, text: str) -> list[MethodTagParameter]:
        params: list[MethodTagParameter] = []
        for chunk in self._split_top_level(text, ","):
            chunk = chunk.strip()
            if not chunk:
                continue
            default: str | None = None
            if "=" in chunk:
                chunk, default = (part.strip() for part in chunk.split("=", 1))

            type_: str | None = None
            if not chunk.lstrip("&.").startswith("$"):
                type_, chunk = split_type(chunk)
            parsed = self._parse_variable_token(chunk.strip())
            if parsed is None:
                continue
            var_name, is_variadic, is_reference = parsed
            params.append(
                MethodTagParameter(
                    name=var_name[1:],
                    type=type_ or None,
                    default_value=default,
                    is_variadic=is_variadic,
                    is_reference=is_reference,
                )
            )
        return params

    @staticmethod
    def _split_top_level(text: str, separator: str) -> list[str]:
        parts: list[str] = []
        depth = 0
        current: list[str] = []
        for ch in text:
            if ch in "<({[":
                depth += 1
            elif ch in ">)}]":
                depth -= 1
            if ch == separator and depth == 0:
                parts.append("".join(current))
                current = []
            else:
                current.append(ch)
        parts.append("".join(current))
        return parts
