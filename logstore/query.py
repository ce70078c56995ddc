"""Query parser and evaluator for the embedded log store.

Implements the subset of Lucene classic query syntax that runbooks use to
describe their investigation queries:

    status_code:500 AND log.level:ERROR
    log.message:"Connection check failed" AND db.type:postgres
    application.name:payment-service AND status_code:[500 TO 599]
    metric:latency AND value:>5000
    +log.level:ERROR -status_code:404 Timeout*
    log.message:(Gateway OR Timeout)^2
    *:*

Adjacent clauses combine with OR (the classic default operator). Matching
is exact and case-sensitive against whitespace tokens, so "ERROR" does not
match "error": the same behaviour a whitespace analyzer gives. A clause
group built only from negations ("NOT x", "-x") matches every record the
negations do not exclude, which makes "a AND NOT b" read the way it looks.

Parsing happens once per query; evaluation walks the resulting tree for
every record in a store snapshot and returns a relevance score per match.
Term and phrase leaves score by inverse document frequency over the
snapshot; wildcard, range, and comparison leaves are constant-score.
"""

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from logstore.records import IndexedLogRecord

MATCH_ALL = "*"
MAX_NESTING = 32


class QuerySyntaxError(ValueError):
    """Raised when a query string cannot be parsed.

    The message carries the original query and the offending position so
    the log search tool can hand it back to the model verbatim.
    """

    def __init__(self, query: str, detail: str, position: int | None = None):
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Cannot parse '{query}': {detail}{where}")
        self.query = query
        self.position = position


# ── Tokens ─────────────────────────────────────────────────────────────────────

class _Kind(Enum):
    LPAREN = "("
    RPAREN = ")"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    PLUS = "+"
    MINUS = "-"
    FIELD = "FIELD"
    TERM = "TERM"
    PHRASE = "PHRASE"
    RANGE = "RANGE"
    EOF = "EOF"


@dataclass
class _Token:
    kind: _Kind
    pos: int
    text: str = ""
    pattern: str | None = None      # regex for terms containing unescaped wildcards
    boost: float = 1.0
    lower: str | None = None        # range bounds
    upper: str | None = None
    include_lower: bool = True
    include_upper: bool = True


_OPERATOR_WORDS = {"AND": _Kind.AND, "OR": _Kind.OR, "NOT": _Kind.NOT}
_TERM_STOP = set(' \t\r\n()[]{}"^:')
_FIELD_NAME = re.compile(r"^(\*|[A-Za-z_][\w.\-]*)$")


class _Lexer:
    def __init__(self, query: str):
        self.query = query
        self.i = 0

    def tokens(self) -> list[_Token]:
        out: list[_Token] = []
        q = self.query
        while True:
            self._skip_ws()
            if self.i >= len(q):
                out.append(_Token(_Kind.EOF, self.i))
                return out
            start = self.i
            ch = q[self.i]
            two = q[self.i:self.i + 2]

            if ch == "(":
                self.i += 1
                out.append(_Token(_Kind.LPAREN, start))
            elif ch == ")":
                self.i += 1
                out.append(self._with_boost(_Token(_Kind.RPAREN, start)))
            elif two == "&&":
                self.i += 2
                out.append(_Token(_Kind.AND, start))
            elif two == "||":
                self.i += 2
                out.append(_Token(_Kind.OR, start))
            elif ch == "!":
                self.i += 1
                out.append(_Token(_Kind.NOT, start))
            elif ch == "+":
                self.i += 1
                out.append(_Token(_Kind.PLUS, start))
            elif ch == "-":
                self.i += 1
                out.append(_Token(_Kind.MINUS, start))
            elif ch == '"':
                out.append(self._with_boost(self._phrase()))
            elif ch in "[{":
                out.append(self._with_boost(self._range()))
            elif ch in "]}^:":
                raise QuerySyntaxError(q, f"unexpected '{ch}'", start)
            else:
                out.append(self._word())

    def _skip_ws(self) -> None:
        while self.i < len(self.query) and self.query[self.i].isspace():
            self.i += 1

    def _phrase(self) -> _Token:
        q, start = self.query, self.i
        self.i += 1
        chars: list[str] = []
        while self.i < len(q):
            ch = q[self.i]
            if ch == "\\" and self.i + 1 < len(q):
                chars.append(q[self.i + 1])
                self.i += 2
                continue
            if ch == '"':
                self.i += 1
                return _Token(_Kind.PHRASE, start, text="".join(chars))
            chars.append(ch)
            self.i += 1
        raise QuerySyntaxError(q, "unterminated phrase", start)

    def _range(self) -> _Token:
        q, start = self.query, self.i
        include_lower = q[self.i] == "["
        end = self.i + 1
        while end < len(q) and q[end] not in "]}":
            end += 1
        if end >= len(q):
            raise QuerySyntaxError(q, "unterminated range", start)
        parts = q[self.i + 1:end].split()
        if len(parts) != 3 or parts[1] != "TO":
            raise QuerySyntaxError(q, "range must look like [lower TO upper]", start)
        include_upper = q[end] == "]"
        self.i = end + 1
        lower = None if parts[0] == MATCH_ALL else parts[0].strip('"')
        upper = None if parts[2] == MATCH_ALL else parts[2].strip('"')
        return _Token(
            _Kind.RANGE, start,
            lower=lower, upper=upper,
            include_lower=include_lower, include_upper=include_upper,
        )

    def _word(self) -> _Token:
        q, start = self.query, self.i
        literal: list[str] = []
        pattern: list[str] = []
        wildcard = False
        while self.i < len(q) and q[self.i] not in _TERM_STOP:
            ch = q[self.i]
            if ch == "\\":
                if self.i + 1 >= len(q):
                    raise QuerySyntaxError(q, "dangling escape character", self.i)
                escaped = q[self.i + 1]
                literal.append(escaped)
                pattern.append(re.escape(escaped))
                self.i += 2
                continue
            if ch in "*?":
                wildcard = True
                pattern.append(".*" if ch == "*" else ".")
            else:
                pattern.append(re.escape(ch))
            literal.append(ch)
            self.i += 1

        text = "".join(literal)
        if self.i < len(q) and q[self.i] == ":":
            if not _FIELD_NAME.match(text):
                raise QuerySyntaxError(q, f"invalid field name '{text}'", start)
            self.i += 1
            return _Token(_Kind.FIELD, start, text=text)

        if text in _OPERATOR_WORDS:
            return _Token(_OPERATOR_WORDS[text], start, text=text)

        token = _Token(_Kind.TERM, start, text=text)
        if wildcard:
            token.pattern = "".join(pattern)
        return self._with_boost(token)

    def _with_boost(self, token: _Token) -> _Token:
        q = self.query
        if self.i < len(q) and q[self.i] == "^":
            self.i += 1
            start = self.i
            while self.i < len(q) and (q[self.i].isdigit() or q[self.i] == "."):
                self.i += 1
            try:
                token.boost = float(q[start:self.i])
            except ValueError:
                raise QuerySyntaxError(q, "boost must be a number", start) from None
        return token


# ── Query tree ─────────────────────────────────────────────────────────────────

class _Stats:
    """Corpus statistics for one snapshot, cached per (field, token)."""

    def __init__(self, records: tuple[IndexedLogRecord, ...]):
        self.records = records
        self._idf: dict[tuple[str, str], float] = {}

    def idf(self, field_name: str, token: str) -> float:
        key = (field_name, token)
        if key not in self._idf:
            df = sum(1 for r in self.records if token in (r.tokens(field_name) or ()))
            self._idf[key] = 1.0 + math.log((len(self.records) + 1) / (df + 1))
        return self._idf[key]


class Node(ABC):
    boost: float = 1.0

    @abstractmethod
    def score(self, record: IndexedLogRecord, stats: _Stats) -> float | None:
        """Return a relevance score if the record matches, else None."""


@dataclass
class MatchAllNode(Node):
    boost: float = 1.0

    def score(self, record, stats):
        return self.boost


@dataclass
class TermNode(Node):
    field_name: str
    text: str
    boost: float = 1.0

    def score(self, record, stats):
        tokens = record.tokens(self.field_name)
        if not tokens:
            return None
        tf = tokens.count(self.text)
        if tf == 0:
            return None
        return self.boost * stats.idf(self.field_name, self.text) * math.sqrt(tf)


@dataclass
class WildcardNode(Node):
    field_name: str
    pattern: str
    boost: float = 1.0
    _regex: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        self._regex = re.compile(self.pattern)

    def score(self, record, stats):
        tokens = record.tokens(self.field_name) or ()
        if any(self._regex.fullmatch(t) for t in tokens):
            return self.boost
        return None


@dataclass
class PhraseNode(Node):
    field_name: str
    words: tuple[str, ...]
    boost: float = 1.0

    def score(self, record, stats):
        tokens = record.tokens(self.field_name)
        if not tokens or not self.words:
            return None
        n = len(self.words)
        freq = sum(1 for i in range(len(tokens) - n + 1) if tokens[i:i + n] == self.words)
        if freq == 0:
            return None
        idf = sum(stats.idf(self.field_name, w) for w in self.words)
        return self.boost * idf * math.sqrt(freq)


def _compare(a: str, b: str) -> int:
    try:
        x, y = float(a), float(b)
    except ValueError:
        x, y = a, b
    return (x > y) - (x < y)


@dataclass
class RangeNode(Node):
    field_name: str
    lower: str | None
    upper: str | None
    include_lower: bool = True
    include_upper: bool = True
    boost: float = 1.0

    def _in_range(self, token: str) -> bool:
        if self.lower is not None:
            c = _compare(token, self.lower)
            if c < 0 or (c == 0 and not self.include_lower):
                return False
        if self.upper is not None:
            c = _compare(token, self.upper)
            if c > 0 or (c == 0 and not self.include_upper):
                return False
        return True

    def score(self, record, stats):
        tokens = record.tokens(self.field_name) or ()
        return self.boost if any(self._in_range(t) for t in tokens) else None


class Occur(Enum):
    MUST = "+"
    SHOULD = ""
    MUST_NOT = "-"


@dataclass
class BooleanNode(Node):
    """A run of adjacent clauses, each with its own occur flag."""

    clauses: list[tuple[Occur, Node]]
    boost: float = 1.0

    def score(self, record, stats):
        total = 0.0
        should_matched = False
        has_must = has_should = False
        for occur, node in self.clauses:
            s = node.score(record, stats)
            if occur is Occur.MUST_NOT:
                if s is not None:
                    return None
            elif occur is Occur.MUST:
                has_must = True
                if s is None:
                    return None
                total += s
            else:
                has_should = True
                if s is not None:
                    should_matched = True
                    total += s
        if has_should and not has_must and not should_matched:
            return None
        return total * self.boost


@dataclass
class AndNode(Node):
    children: list[Node]
    boost: float = 1.0

    def score(self, record, stats):
        total = 0.0
        for child in self.children:
            s = child.score(record, stats)
            if s is None:
                return None
            total += s
        return total * self.boost


@dataclass
class OrNode(Node):
    children: list[Node]
    boost: float = 1.0

    def score(self, record, stats):
        scores = [s for c in self.children if (s := c.score(record, stats)) is not None]
        if not scores:
            return None
        return sum(scores) * self.boost


# ── Parser ─────────────────────────────────────────────────────────────────────

_CLAUSE_START = {
    _Kind.LPAREN, _Kind.NOT, _Kind.PLUS, _Kind.MINUS,
    _Kind.FIELD, _Kind.TERM, _Kind.PHRASE, _Kind.RANGE,
}
_COMPARATORS = (">=", "<=", ">", "<")


class _Parser:
    def __init__(self, query: str, default_field: str):
        self.query = query
        self.default_field = default_field
        self.tokens = _Lexer(query).tokens()
        self.pos = 0
        self.depth = 0

    def parse(self) -> Node:
        if self._peek().kind is _Kind.EOF:
            raise QuerySyntaxError(self.query, "empty query")
        node = self._or_expr(self.default_field)
        tok = self._peek()
        if tok.kind is not _Kind.EOF:
            raise QuerySyntaxError(self.query, f"unexpected '{tok.text or tok.kind.value}'", tok.pos)
        return node

    def _peek(self) -> _Token:
        return self.tokens[self.pos]

    def _next(self) -> _Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _or_expr(self, fld: str) -> Node:
        children = [self._and_expr(fld)]
        while self._peek().kind is _Kind.OR:
            self._next()
            children.append(self._and_expr(fld))
        return children[0] if len(children) == 1 else OrNode(children)

    def _and_expr(self, fld: str) -> Node:
        children = [self._clause_seq(fld)]
        while self._peek().kind is _Kind.AND:
            self._next()
            children.append(self._clause_seq(fld))
        return children[0] if len(children) == 1 else AndNode(children)

    def _clause_seq(self, fld: str) -> Node:
        clauses = [self._clause(fld)]
        while self._peek().kind in _CLAUSE_START:
            clauses.append(self._clause(fld))
        if len(clauses) == 1 and clauses[0][0] is Occur.SHOULD:
            return clauses[0][1]
        return BooleanNode(clauses)

    def _clause(self, fld: str) -> tuple[Occur, Node]:
        tok = self._peek()
        occur = Occur.SHOULD
        if tok.kind is _Kind.PLUS:
            occur = Occur.MUST
            self._next()
        elif tok.kind in (_Kind.MINUS, _Kind.NOT):
            occur = Occur.MUST_NOT
            self._next()
        return occur, self._primary(fld)

    def _primary(self, fld: str) -> Node:
        tok = self._next()
        if tok.kind is _Kind.LPAREN:
            self.depth += 1
            if self.depth > MAX_NESTING:
                raise QuerySyntaxError(self.query, "query nested too deeply", tok.pos)
            node = self._or_expr(fld)
            self.depth -= 1
            closing = self._next()
            if closing.kind is not _Kind.RPAREN:
                raise QuerySyntaxError(self.query, "missing closing parenthesis", closing.pos)
            if closing.boost != 1.0:
                node.boost *= closing.boost
            return node
        if tok.kind is _Kind.FIELD:
            nxt = self._peek()
            if nxt.kind in (_Kind.FIELD, _Kind.EOF, _Kind.RPAREN, _Kind.AND, _Kind.OR):
                raise QuerySyntaxError(self.query, f"field '{tok.text}' has no value", tok.pos)
            if tok.text == MATCH_ALL and not (nxt.kind is _Kind.TERM and nxt.text == MATCH_ALL):
                raise QuerySyntaxError(self.query, "'*' is only valid as '*:*'", tok.pos)
            return self._primary(tok.text)
        if tok.kind is _Kind.PHRASE:
            return PhraseNode(fld, tuple(tok.text.split()), boost=tok.boost)
        if tok.kind is _Kind.RANGE:
            return RangeNode(
                fld, tok.lower, tok.upper,
                include_lower=tok.include_lower,
                include_upper=tok.include_upper,
                boost=tok.boost,
            )
        if tok.kind is _Kind.TERM:
            return self._term(fld, tok)
        label = "end of query" if tok.kind is _Kind.EOF else f"'{tok.text or tok.kind.value}'"
        raise QuerySyntaxError(self.query, f"unexpected {label}", tok.pos)

    def _term(self, fld: str, tok: _Token) -> Node:
        text = tok.text
        if text == MATCH_ALL and fld in (MATCH_ALL, self.default_field):
            return MatchAllNode(boost=tok.boost)
        for op in _COMPARATORS:
            if text.startswith(op):
                operand = text[len(op):]
                if not operand:
                    raise QuerySyntaxError(self.query, f"comparison '{op}' has no value", tok.pos)
                lower = operand if op.startswith(">") else None
                upper = operand if op.startswith("<") else None
                return RangeNode(
                    fld, lower, upper,
                    include_lower=op == ">=",
                    include_upper=op == "<=",
                    boost=tok.boost,
                )
        if tok.pattern is not None:
            return WildcardNode(fld, tok.pattern, boost=tok.boost)
        return TermNode(fld, text, boost=tok.boost)


# ── Public API ─────────────────────────────────────────────────────────────────

def parse_query(query: str, default_field: str) -> Node:
    """Parse a query string into an evaluable tree.

    Args:
        query: Lucene-style query string.
        default_field: Field unqualified terms and phrases search.

    Returns:
        The root Node of the parsed query.

    Raises:
        QuerySyntaxError: If the query is empty or malformed.
    """
    return _Parser(query, default_field).parse()


def search(node: Node, records: tuple[IndexedLogRecord, ...]) -> list[tuple[int, float]]:
    """Evaluate a parsed query against a snapshot of records.

    Returns:
        (record index, score) for every match, highest score first. Ties
        keep insertion order so results are deterministic.
    """
    stats = _Stats(records)
    matches = [
        (i, s) for i, record in enumerate(records)
        if (s := node.score(record, stats)) is not None
    ]
    matches.sort(key=lambda m: (-m[1], m[0]))
    return matches
