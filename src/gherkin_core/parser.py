"""Gherkin recursive descent parser.

Grammar (informal EBNF, blank and comment lines allowed between any two
constructs):
    document    := LANGUAGE? feature? EOF
    feature     := TAG_LINE* FEATURE description background? child*
    child       := TAG_LINE* (scenario | rule)
    rule        := RULE description background? (TAG_LINE* scenario)*
    background  := BACKGROUND description step*
    scenario    := (SCENARIO | SCENARIO_OUTLINE) description step* examples*
    examples    := TAG_LINE* EXAMPLES description table?
    step        := STEP (doc_string | table)?
    doc_string  := DOC_STRING DOC_STRING_CONTENT* DOC_STRING
    table       := TABLE_ROW+
    description := OTHER*

Examples are only accepted after an outline keyword. The parser either
returns a complete document or raises ParserError; there are no partial ASTs.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from gherkin_core.errors import GherkinError
from gherkin_core.languages import DEFAULT_LANGUAGE, find_language, get_language
from gherkin_core.lexer import Lexer, Token, TokenType
from gherkin_core.models import (
    Background,
    Comment,
    DataTable,
    DocString,
    Examples,
    Feature,
    GherkinDocument,
    Location,
    Rule,
    Scenario,
    Step,
    TableCell,
    TableRow,
    Tag,
)


class ParserErrorKind(Enum):
    UNEXPECTED_TOKEN = "unexpectedToken"
    UNEXPECTED_EOF = "unexpectedEOF"
    INCONSISTENT_TABLE_CELL_COUNT = "inconsistentTableCellCount"
    DUPLICATE_BACKGROUND = "duplicateBackground"
    UNKNOWN_LANGUAGE = "unknownLanguage"


_TOKEN_NAMES = {
    TokenType.FEATURE: "Feature",
    TokenType.RULE: "Rule",
    TokenType.BACKGROUND: "Background",
    TokenType.SCENARIO: "Scenario",
    TokenType.SCENARIO_OUTLINE: "Scenario Outline",
    TokenType.EXAMPLES: "Examples",
    TokenType.STEP: "step",
    TokenType.DOC_STRING: "doc string",
    TokenType.DOC_STRING_CONTENT: "doc string content",
    TokenType.TABLE_ROW: "table row",
    TokenType.TAG_LINE: "tags",
    TokenType.COMMENT: "comment",
    TokenType.LANGUAGE: "language directive",
    TokenType.EMPTY: "empty line",
    TokenType.OTHER: "text",
    TokenType.EOF: "end of file",
}


class ParserError(GherkinError):
    """Raised when a document violates the Gherkin grammar."""

    def __init__(self, kind: ParserErrorKind, location: Location, message: str) -> None:
        self.kind = kind
        self.location = location
        self.message = message
        super().__init__(f"({location.line}:{location.column}): {message}")

    @classmethod
    def unexpected_token(cls, token: Token, expected: str) -> ParserError:
        if token.type == TokenType.EOF:
            return cls.unexpected_eof(token.location, expected)
        found = _TOKEN_NAMES[token.type]
        detail = f" '{token.text}'" if token.text else ""
        return cls(
            ParserErrorKind.UNEXPECTED_TOKEN,
            token.location,
            f"Unexpected {found}{detail}: expected {expected}",
        )

    @classmethod
    def unexpected_eof(cls, location: Location, expected: str) -> ParserError:
        return cls(
            ParserErrorKind.UNEXPECTED_EOF,
            location,
            f"Unexpected end of file: expected {expected}",
        )

    @classmethod
    def inconsistent_table_cell_count(cls, location: Location) -> ParserError:
        return cls(
            ParserErrorKind.INCONSISTENT_TABLE_CELL_COUNT,
            location,
            "Inconsistent cell count within the table",
        )

    @classmethod
    def duplicate_background(cls, location: Location) -> ParserError:
        return cls(
            ParserErrorKind.DUPLICATE_BACKGROUND,
            location,
            "Only one Background is allowed per Feature or Rule",
        )

    @classmethod
    def unknown_language(cls, location: Location, code: str) -> ParserError:
        return cls(
            ParserErrorKind.UNKNOWN_LANGUAGE,
            location,
            f"Unknown language '{code}'",
        )


_SCENARIO_TYPES = (TokenType.SCENARIO, TokenType.SCENARIO_OUTLINE)
_SKIPPABLE = (TokenType.EMPTY, TokenType.COMMENT)


class Parser:
    """Recursive descent parser for Gherkin token streams."""

    def __init__(self, tokens: list[Token], language: str = DEFAULT_LANGUAGE) -> None:
        self.tokens = tokens
        self.language = language
        self.pos = 0
        self.comments: list[Comment] = []

    def parse(self) -> GherkinDocument:
        self._skip_blanks()
        if self._peek().type == TokenType.LANGUAGE:
            self._advance()
            self._skip_blanks()

        feature = None
        if not self._at_end():
            feature = self._parse_feature()
            self._skip_blanks()
            if not self._at_end():
                raise ParserError.unexpected_token(self._peek(), "end of file")

        return GherkinDocument(feature=feature, comments=tuple(self.comments))

    # ── Containers ───────────────────────────────────────────────────

    def _parse_feature(self) -> Feature:
        tags = self._parse_tags()
        token = self._expect(TokenType.FEATURE, "Feature")
        description = self._parse_description()

        children: list[Background | Scenario | Rule] = []
        while True:
            self._skip_blanks()
            if self._at_end():
                break
            child_tags = self._parse_tags()
            current = self._peek()

            if current.type == TokenType.BACKGROUND:
                self._check_background(children, child_tags, current)
                children.append(self._parse_background())
            elif current.type in _SCENARIO_TYPES:
                children.append(self._parse_scenario(child_tags))
            elif current.type == TokenType.RULE:
                children.append(self._parse_rule(child_tags))
            else:
                raise ParserError.unexpected_token(
                    current, "Background, Scenario, Scenario Outline or Rule"
                )

        return Feature(
            location=token.location,
            keyword=token.keyword or "Feature",
            name=token.text,
            language=self.language,
            description=description,
            tags=tuple(tags),
            children=tuple(children),
        )

    def _parse_rule(self, tags: list[Tag]) -> Rule:
        token = self._expect(TokenType.RULE, "Rule")
        description = self._parse_description()

        children: list[Background | Scenario] = []
        while True:
            self._skip_blanks()
            current = self._peek()
            if current.type in (TokenType.EOF, TokenType.RULE):
                break
            if current.type == TokenType.TAG_LINE and self._tags_lead_to(TokenType.RULE):
                break

            child_tags = self._parse_tags()
            current = self._peek()
            if current.type == TokenType.BACKGROUND:
                self._check_background(children, child_tags, current)
                children.append(self._parse_background())
            elif current.type in _SCENARIO_TYPES:
                children.append(self._parse_scenario(child_tags))
            else:
                raise ParserError.unexpected_token(
                    current, "Background, Scenario, Scenario Outline or Rule"
                )

        return Rule(
            location=token.location,
            keyword=token.keyword or "Rule",
            name=token.text,
            description=description,
            tags=tuple(tags),
            children=tuple(children),
        )

    def _check_background(
        self, children: list, tags: list[Tag], token: Token
    ) -> None:
        if any(isinstance(child, Background) for child in children):
            raise ParserError.duplicate_background(token.location)
        if tags:
            raise ParserError.unexpected_token(token, "Scenario, Scenario Outline or Rule after tags")
        if children:
            raise ParserError.unexpected_token(token, "Scenario, Scenario Outline or Rule")

    def _parse_background(self) -> Background:
        token = self._expect(TokenType.BACKGROUND, "Background")
        description = self._parse_description()
        steps = self._parse_steps()
        return Background(
            location=token.location,
            keyword=token.keyword or "Background",
            name=token.text,
            description=description,
            steps=tuple(steps),
        )

    def _parse_scenario(self, tags: list[Tag]) -> Scenario:
        token = self._advance()
        if token.type not in _SCENARIO_TYPES:
            raise ParserError.unexpected_token(token, "Scenario or Scenario Outline")
        outline = token.type == TokenType.SCENARIO_OUTLINE
        description = self._parse_description()
        steps = self._parse_steps()

        examples: list[Examples] = []
        while True:
            self._skip_blanks()
            current = self._peek()
            starts_examples = current.type == TokenType.EXAMPLES or (
                current.type == TokenType.TAG_LINE and self._tags_lead_to(TokenType.EXAMPLES)
            )
            if not starts_examples:
                break
            if not outline:
                raise ParserError.unexpected_token(
                    current, "Scenario, Scenario Outline or Rule (Examples need an outline)"
                )
            examples.append(self._parse_examples(self._parse_tags()))

        return Scenario(
            location=token.location,
            keyword=token.keyword or ("Scenario Outline" if outline else "Scenario"),
            name=token.text,
            description=description,
            tags=tuple(tags),
            steps=tuple(steps),
            examples=tuple(examples),
            outline=outline,
        )

    def _parse_examples(self, tags: list[Tag]) -> Examples:
        token = self._expect(TokenType.EXAMPLES, "Examples")
        description = self._parse_description()
        self._skip_blanks()

        header = None
        body: list[TableRow] = []
        if self._peek().type == TokenType.TABLE_ROW:
            rows = self._parse_table_rows()
            header, body = rows[0], rows[1:]

        return Examples(
            location=token.location,
            keyword=token.keyword or "Examples",
            name=token.text or None,
            description=description,
            tags=tuple(tags),
            table_header=header,
            table_body=tuple(body),
        )

    # ── Steps and arguments ──────────────────────────────────────────

    def _parse_steps(self) -> list[Step]:
        language = find_language(self.language) or get_language(DEFAULT_LANGUAGE)
        steps: list[Step] = []
        while True:
            self._skip_blanks()
            if self._peek().type != TokenType.STEP:
                break
            token = self._advance()
            keyword = token.keyword or ""
            keyword_type = language.step_keyword_type(keyword)

            self._skip_blanks()
            doc_string = None
            data_table = None
            if self._peek().type == TokenType.DOC_STRING:
                doc_string = self._parse_doc_string()
            elif self._peek().type == TokenType.TABLE_ROW:
                rows = self._parse_table_rows()
                data_table = DataTable(location=rows[0].location, rows=tuple(rows))

            steps.append(Step(
                location=token.location,
                keyword=keyword,
                keyword_type=keyword_type,
                text=token.text,
                doc_string=doc_string,
                data_table=data_table,
            ))

        current = self._peek()
        if current.type in (TokenType.OTHER, TokenType.DOC_STRING, TokenType.TABLE_ROW):
            raise ParserError.unexpected_token(current, "step")
        return steps

    def _parse_doc_string(self) -> DocString:
        opening = self._advance()
        delimiter = opening.keyword or '"""'
        lines: list[str] = []
        while True:
            current = self._peek()
            if current.type == TokenType.EOF:
                raise ParserError.unexpected_eof(
                    current.location, f"closing doc string delimiter '{delimiter}'"
                )
            self._advance()
            if current.type == TokenType.DOC_STRING:
                break
            lines.append(current.text)

        return DocString(
            location=opening.location,
            content="\n".join(lines),
            delimiter=delimiter,
            media_type=opening.text or None,
        )

    def _parse_table_rows(self) -> list[TableRow]:
        rows: list[TableRow] = []
        width: int | None = None
        while self._peek().type == TokenType.TABLE_ROW:
            token = self._advance()
            if width is None:
                width = len(token.items)
            elif len(token.items) != width:
                raise ParserError.inconsistent_table_cell_count(token.location)
            rows.append(TableRow(
                location=token.location,
                cells=tuple(
                    TableCell(Location(token.location.line, item.column), item.text)
                    for item in token.items
                ),
            ))
            self._skip_blanks()
        return rows

    # ── Tags and descriptions ────────────────────────────────────────

    def _parse_tags(self) -> list[Tag]:
        tags: list[Tag] = []
        while self._peek().type == TokenType.TAG_LINE:
            token = self._advance()
            for item in token.items:
                tags.append(Tag(Location(token.location.line, item.column), item.text))
            self._skip_blanks()
        return tags

    def _tags_lead_to(self, target: TokenType) -> bool:
        """True if the tag lines at the cursor are followed by ``target``."""
        lookahead = self.pos
        while lookahead < len(self.tokens):
            token_type = self.tokens[lookahead].type
            if token_type in (TokenType.TAG_LINE,) + _SKIPPABLE:
                lookahead += 1
                continue
            return token_type == target
        return False

    def _parse_description(self) -> str | None:
        lines: list[str] = []
        while self._peek().type in (TokenType.OTHER, TokenType.EMPTY, TokenType.COMMENT):
            token = self._advance()
            if token.type == TokenType.COMMENT:
                self.comments.append(Comment(token.location, token.text))
            elif token.type == TokenType.OTHER:
                lines.append(token.text)
            elif lines:
                lines.append("")
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(lines) if lines else None

    # ── Token navigation ─────────────────────────────────────────────

    def _peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        last = self.tokens[-1].location if self.tokens else Location(1, 1)
        return Token(TokenType.EOF, last)

    def _advance(self) -> Token:
        token = self._peek()
        if self.pos < len(self.tokens):
            self.pos += 1
        return token

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _expect(self, token_type: TokenType, expected: str) -> Token:
        token = self._peek()
        if token.type != token_type:
            raise ParserError.unexpected_token(token, expected)
        return self._advance()

    def _skip_blanks(self) -> None:
        while self._peek().type in _SKIPPABLE:
            token = self._advance()
            if token.type == TokenType.COMMENT:
                self.comments.append(Comment(token.location, token.text))


def parse(source: str) -> GherkinDocument:
    """Parse Gherkin source text into a GherkinDocument."""
    lexer = Lexer(source)
    tokens = lexer.tokenize()
    for token in tokens:
        if token.type == TokenType.LANGUAGE and find_language(token.text) is None:
            raise ParserError.unknown_language(token.location, token.text)
        if token.type not in _SKIPPABLE:
            break
    parser = Parser(tokens, language=lexer.language.code)
    return parser.parse()


def parse_file(path: Path) -> GherkinDocument:
    """Parse a .feature file."""
    return parse(path.read_text(encoding="utf-8"))
