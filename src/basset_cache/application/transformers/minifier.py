from __future__ import annotations

import re
from typing import ClassVar, final, override

from basset_cache.domain.errors import TransformFailed
from basset_cache.domain.protocols.transformer_port import TransformerPort

Parts = list[tuple[bool, str]]


@final
class Minifier(TransformerPort):
    """Conservative whitespace and comment stripping for CSS and JS.

    CSS is collapsed aggressively since its grammar is simple once comments
    and strings are accounted for. JS only loses block comments, full-line
    ``//`` comments, indentation and blank lines; line breaks are kept because
    of automatic semicolon insertion. String, template and regex literals are
    copied verbatim, and ``/*! ... */`` license comments survive in both. Output
    is a pure function of the input bytes.
    """

    _CSS_TOKEN_RE: ClassVar[re.Pattern[str]] = re.compile(
        r'(?P<string>"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|/\*!.*?\*/)'
        r"|(?P<comment>/\*.*?\*/)",
        re.DOTALL,
    )
    _CSS_SPACE_RE: ClassVar[re.Pattern[str]] = re.compile(r"\s+")
    _CSS_PUNCT_RE: ClassVar[re.Pattern[str]] = re.compile(r"\s*([{};,>])\s*")
    _CSS_COLON_RE: ClassVar[re.Pattern[str]] = re.compile(r":\s+")
    _CSS_TRAILING_SEMI_RE: ClassVar[re.Pattern[str]] = re.compile(r";}")

    _JS_QUOTED_RE: ClassVar[re.Pattern[str]] = re.compile(
        r'"(?:\\[\s\S]|[^"\\\n])*"|\'(?:\\[\s\S]|[^\'\\\n])*\''
    )
    _JS_REGEX_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"/(?![*/])(?:\\.|\[(?:\\.|[^\]\\\n])*\]|[^/\\\[\n])+/[A-Za-z]*"
    )
    _JS_WORD_TAIL_RE: ClassVar[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_$]+$")
    # Keywords after which a slash opens a regex literal rather than a division.
    _JS_REGEX_KEYWORDS: ClassVar[frozenset[str]] = frozenset(
        {
            "await",
            "case",
            "delete",
            "do",
            "else",
            "in",
            "instanceof",
            "new",
            "of",
            "return",
            "throw",
            "typeof",
            "void",
            "yield",
        }
    )
    _JS_LINE_COMMENT_RE: ClassVar[re.Pattern[str]] = re.compile(r"^[ \t]*//[^\n]*", re.MULTILINE)
    _JS_NEWLINE_RE: ClassVar[re.Pattern[str]] = re.compile(r"[ \t]*(?:\r?\n[ \t]*)+")

    @override
    def transform(self, data: bytes, suffix: str) -> bytes:
        normalized = str(suffix or "").lower()
        if normalized not in {".css", ".js", ".mjs"}:
            return data

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransformFailed(f"Asset is not valid UTF-8: {exc}") from exc

        if normalized == ".css":
            return self.minify_css(text).encode("utf-8")
        return self.minify_js(text).encode("utf-8")

    @staticmethod
    def _append(parts: Parts, verbatim: bool, chunk: str) -> None:
        if not verbatim and parts and not parts[-1][0]:
            parts[-1] = (False, parts[-1][1] + chunk)
            return
        parts.append((verbatim, chunk))

    @classmethod
    def _split(cls, pattern: re.Pattern[str], text: str) -> Parts:
        """Split into (verbatim, chunk) runs; comments become a single separator."""
        parts: Parts = []
        position = 0
        for match in pattern.finditer(text):
            if match.start() > position:
                cls._append(parts, False, text[position : match.start()])
            if match.group("string") is not None:
                cls._append(parts, True, match.group("string"))
            else:
                cls._append(parts, False, "\n" if "\n" in match.group("comment") else " ")
            position = match.end()
        if position < len(text):
            cls._append(parts, False, text[position:])
        return parts

    @staticmethod
    def _check_terminated(parts: Parts) -> None:
        if any(not verbatim and "/*" in chunk for verbatim, chunk in parts):
            raise TransformFailed("Unterminated block comment")

    @classmethod
    def _ends_with_operand(cls, text: str, start: int, end: int, default: bool) -> bool:
        while end > start and text[end - 1].isspace():
            end -= 1
        if end == start:
            return default
        if text[end - 1] in ")]":
            return True
        # The window is longer than any keyword, so a clipped match is never one.
        word = cls._JS_WORD_TAIL_RE.search(text, max(start, end - 16), end)
        if word is None:
            return False
        return word.group(0) not in cls._JS_REGEX_KEYWORDS

    @classmethod
    def _template_end(cls, text: str, start: int) -> int:
        index = start + 1
        while index < len(text):
            if text[index] == "\\":
                index += 2
            elif text[index] == "`":
                return index + 1
            elif text.startswith("${", index):
                index = cls._substitution_end(text, index + 2)
            else:
                index += 1
        raise TransformFailed("Unterminated template literal")

    @classmethod
    def _substitution_end(cls, text: str, index: int) -> int:
        depth = 1
        while index < len(text):
            char = text[index]
            if char in "\"'":
                quoted = cls._JS_QUOTED_RE.match(text, index)
                index = quoted.end() if quoted else index + 1
            elif char == "`":
                index = cls._template_end(text, index)
            else:
                index += 1
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        return index
        raise TransformFailed("Unterminated template literal")

    @classmethod
    def _split_js(cls, text: str) -> Parts:
        """Tokenize just enough JS to tell comments from string and regex literals.

        A slash opens a regex literal unless it follows an operand (an
        identifier, a number, ``)`` or ``]``). When in doubt the slash is read
        as a regex, which only ever keeps more text verbatim.
        """
        parts: Parts = []
        after_operand = False
        plain_start = 0
        index = 0
        while index < len(text):
            char = text[index]
            if text.startswith("//", index):
                after_operand = cls._ends_with_operand(text, plain_start, index, after_operand)
                newline = text.find("\n", index)
                end = len(text) if newline < 0 else newline
                cls._append(parts, False, text[plain_start:end])
                index = plain_start = end
                continue
            if text.startswith("/*", index):
                close = text.find("*/", index + 2)
                if close < 0:
                    raise TransformFailed("Unterminated block comment")
                after_operand = cls._ends_with_operand(text, plain_start, index, after_operand)
                cls._append(parts, False, text[plain_start:index])
                comment = text[index : close + 2]
                if comment.startswith("/*!"):
                    cls._append(parts, True, comment)
                else:
                    cls._append(parts, False, "\n" if "\n" in comment else " ")
                index = plain_start = close + 2
                continue

            if char in "\"'":
                quoted = cls._JS_QUOTED_RE.match(text, index)
                if quoted is None:
                    raise TransformFailed(f"Unterminated string literal at offset {index}")
                end = quoted.end()
            elif char == "`":
                end = cls._template_end(text, index)
            elif char == "/" and not cls._ends_with_operand(
                text, plain_start, index, after_operand
            ):
                literal = cls._JS_REGEX_RE.match(text, index)
                if literal is None:
                    index += 1
                    continue
                end = literal.end()
            else:
                index += 1
                continue

            if index > plain_start:
                cls._append(parts, False, text[plain_start:index])
            cls._append(parts, True, text[index:end])
            after_operand = True
            index = plain_start = end

        if plain_start < len(text):
            cls._append(parts, False, text[plain_start:])
        return parts

    @classmethod
    def minify_css(cls, text: str) -> str:
        parts = cls._split(cls._CSS_TOKEN_RE, text)
        cls._check_terminated(parts)
        chunks: list[str] = []
        for verbatim, chunk in parts:
            if verbatim:
                chunks.append(chunk)
                continue
            collapsed = cls._CSS_SPACE_RE.sub(" ", chunk)
            collapsed = cls._CSS_PUNCT_RE.sub(r"\1", collapsed)
            chunks.append(cls._CSS_COLON_RE.sub(":", collapsed))
        return cls._CSS_TRAILING_SEMI_RE.sub("}", "".join(chunks)).strip()

    @classmethod
    def minify_js(cls, text: str) -> str:
        chunks: list[str] = []
        for verbatim, chunk in cls._split_js(text):
            if verbatim:
                chunks.append(chunk)
                continue
            stripped = cls._JS_LINE_COMMENT_RE.sub("", chunk)
            chunks.append(cls._JS_NEWLINE_RE.sub("\n", stripped))
        return "".join(chunks).strip()
