"""Line-oriented Gherkin lexer.

Every source line becomes exactly one token, classified in this order:
doc-string content (while a fence is open), empty, comment / language
directive, tag line, doc-string fence, table row, structural keyword, step
keyword, other. The stream always ends with a single EOF token. The lexer
never fails: anything it cannot classify is ``OTHER``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from gherkin_core.languages import (
    DEFAULT_LANGUAGE,
    GherkinLanguage,
    detect_language_code,
    find_language,
    get_language,
    parse_language_directive,
)
from gherkin_core.models import Location

DOC_STRING_DELIMITERS = ('"""', "```")


class TokenType(Enum):
    FEATURE = auto()
    RULE = auto()
    BACKGROUND = auto()
    SCENARIO = auto()
    SCENARIO_OUTLINE = auto()
    EXAMPLES = auto()
    STEP = auto()
    DOC_STRING = auto()          # opening or closing fence
    DOC_STRING_CONTENT = auto()
    TABLE_ROW = auto()
    TAG_LINE = auto()
    COMMENT = auto()
    LANGUAGE = auto()            # "# language: xx" on the first non-empty line
    EMPTY = auto()
    OTHER = auto()
    EOF = auto()


_CONSTRUCT_TOKENS = {
    "feature": TokenType.FEATURE,
    "rule": TokenType.RULE,
    "background": TokenType.BACKGROUND,
    "scenarioOutline": TokenType.SCENARIO_OUTLINE,
    "scenario": TokenType.SCENARIO,
    "examples": TokenType.EXAMPLES,
}


@dataclass(frozen=True)
class TokenItem:
    """A table cell or tag found on a line."""

    column: int
    text: str


@dataclass(frozen=True)
class Token:
    type: TokenType
    location: Location
    keyword: str | None = None
    text: str = ""
    items: tuple[TokenItem, ...] = ()


def _first_column(line: str) -> int:
    return len(line) - len(line.lstrip()) + 1


def split_table_cells(line: str) -> tuple[TokenItem, ...]:
    r"""Split a ``|a|b|`` line into cells.

    Cells are trimmed before escapes are decoded, so ``\n`` and ``\|`` at the
    edge of a cell survive. Text after the last pipe is ignored.
    """
    cells: list[TokenItem] = []
    start = line.find("|")
    if start < 0:
        return ()
    raw: list[str] = []
    cell_start = start + 1  # 0-based index of the first char inside the cell
    i = start + 1
    while i < len(line):
        char = line[i]
        if char == "\\" and i + 1 < len(line):
            raw.append(line[i:i + 2])
            i += 2
            continue
        if char == "|":
            text = "".join(raw)
            stripped = text.strip()
            leading = len(text) - len(text.lstrip())
            cells.append(TokenItem(
                column=cell_start + leading + 1,
                text=_unescape_cell(stripped),
            ))
            raw = []
            cell_start = i + 1
        else:
            raw.append(char)
        i += 1
    return tuple(cells)


def _unescape_cell(raw: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(raw):
        char = raw[i]
        if char == "\\" and i + 1 < len(raw):
            nxt = raw[i + 1]
            if nxt == "|":
                out.append("|")
            elif nxt == "n":
                out.append("\n")
            elif nxt == "\\":
                out.append("\\")
            else:
                out.append(char + nxt)
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


def escape_cell(value: str) -> str:
    """Inverse of the cell decoding applied by the lexer."""
    return value.replace("\\", "\\\\").replace("|", "\\|").replace("\n", "\\n")


def split_tags(line: str) -> tuple[TokenItem, ...]:
    """Split a tag line into ``@tag`` items; `` #`` starts a trailing comment."""
    items: list[TokenItem] = []
    i = 0
    length = len(line)
    while i < length:
        if line[i].isspace():
            i += 1
            continue
        if line[i] == "#" and (i == 0 or line[i - 1].isspace()):
            break
        start = i
        while i < length and not line[i].isspace():
            i += 1
        word = line[start:i]
        if word.startswith("@") and len(word) > 1:
            items.append(TokenItem(column=start + 1, text=word))
    return tuple(items)


class Lexer:
    """Tokenizes Gherkin source text into a flat token stream."""

    def __init__(self, source: str, language: GherkinLanguage | None = None) -> None:
        self.lines = [line.removesuffix("\r") for line in source.split("\n")]
        if language is None:
            code = detect_language_code(source) or DEFAULT_LANGUAGE
            language = find_language(code) or get_language(DEFAULT_LANGUAGE)
        self.language = language

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        fence: str | None = None
        fence_indent = 0
        seen_content = False

        for index, line in enumerate(self.lines):
            line_num = index + 1
            stripped = line.strip()

            if fence is not None:
                if stripped == fence:
                    tokens.append(Token(
                        TokenType.DOC_STRING,
                        Location(line_num, _first_column(line)),
                        keyword=fence,
                    ))
                    fence = None
                else:
                    tokens.append(Token(
                        TokenType.DOC_STRING_CONTENT,
                        Location(line_num, 1),
                        text=_dedent(line, fence_indent),
                    ))
                continue

            if not stripped:
                tokens.append(Token(TokenType.EMPTY, Location(line_num, 1)))
                continue

            first = not seen_content
            seen_content = True
            column = _first_column(line)
            location = Location(line_num, column)

            if stripped.startswith("#"):
                code = parse_language_directive(stripped) if first else None
                if code is not None:
                    tokens.append(Token(
                        TokenType.LANGUAGE, location, keyword="# language:", text=code
                    ))
                else:
                    tokens.append(Token(TokenType.COMMENT, location, text=stripped))
                continue

            if stripped.startswith("@"):
                tokens.append(Token(
                    TokenType.TAG_LINE,
                    location,
                    text=stripped,
                    items=tuple(
                        TokenItem(column=item.column + column - 1, text=item.text)
                        for item in split_tags(stripped)
                    ),
                ))
                continue

            delimiter = _fence_of(stripped)
            if delimiter is not None:
                fence = delimiter
                fence_indent = column - 1
                tokens.append(Token(
                    TokenType.DOC_STRING,
                    location,
                    keyword=delimiter,
                    text=stripped[len(delimiter):].strip(),
                ))
                continue

            if stripped.startswith("|"):
                tokens.append(Token(
                    TokenType.TABLE_ROW, location, text=stripped, items=split_table_cells(line)
                ))
                continue

            tokens.append(self._match_keyword(stripped, location))

        tokens.append(Token(TokenType.EOF, Location(len(self.lines) + 1, 1)))
        return tokens

    def _match_keyword(self, stripped: str, location: Location) -> Token:
        for keyword, construct in self.language.structural_keywords:
            if stripped.startswith(keyword + ":"):
                return Token(
                    _CONSTRUCT_TOKENS[construct],
                    location,
                    keyword=keyword,
                    text=stripped[len(keyword) + 1:].strip(),
                )
        for keyword in self.language.step_keywords:
            if stripped.startswith(keyword):
                return Token(
                    TokenType.STEP,
                    location,
                    keyword=keyword,
                    text=stripped[len(keyword):].strip(),
                )
        return Token(TokenType.OTHER, location, text=stripped)


def _fence_of(stripped: str) -> str | None:
    for delimiter in DOC_STRING_DELIMITERS:
        if stripped.startswith(delimiter):
            return delimiter
    return None


def _dedent(line: str, indent: int) -> str:
    """Drop up to ``indent`` leading whitespace characters."""
    removed = 0
    while removed < indent and removed < len(line) and line[removed] in " \t":
        removed += 1
    return line[removed:]


def tokenize(source: str, language: GherkinLanguage | None = None) -> list[Token]:
    """Tokenize Gherkin source text."""
    return Lexer(source, language).tokenize()
