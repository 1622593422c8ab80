"""Statement-kind admission control for caller-supplied SQL.

Classification is keyword based: the first token decides, with a whole-text
scan for mutating verbs when the statement can wrap other statements (``WITH``
and ``EXPLAIN``).  This is advisory admission control that stops read tooling
from being used to mutate data, not an injection barrier.  The scan is a
heuristic: a mutating word inside a string literal or comment of such a
statement also makes it a write.
"""

import re

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import Token, TokenType

from pgwarden._types import OperationClass, ValidationVerdict
from pgwarden.errors import ValidationError

DIALECT = "postgres"

EMPTY_QUERY = "empty query"
MULTIPLE_STATEMENTS = "multiple statements not allowed"

READ_KEYWORDS = frozenset({"SELECT", "WITH", "SHOW", "EXPLAIN"})
WRITE_KEYWORDS = frozenset(
    {
        "INSERT",
        "UPDATE",
        "DELETE",
        "CREATE",
        "ALTER",
        "DROP",
        "TRUNCATE",
        "GRANT",
        "REVOKE",
    }
)

# Read keywords whose body may carry a data-modifying statement.
_WRAPPING_KEYWORDS = frozenset({"WITH", "EXPLAIN"})

_MUTATING_VERB = re.compile(
    r"\b(?:" + "|".join(sorted(WRITE_KEYWORDS | {"MERGE"})) + r")\b",
    re.IGNORECASE,
)


def _tokenize(sql: str) -> list[Token]:
    """Tokenize *sql*; comments and whitespace never become tokens."""
    return sqlglot.tokenize(sql, read=DIALECT)


def _statement_tokens(tokens: list[Token]) -> list[list[Token]]:
    statements: list[list[Token]] = [[]]
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            statements.append([])
        else:
            statements[-1].append(token)
    return [statement for statement in statements if statement]


def validate_sql(sql: str) -> ValidationVerdict:
    """Check that *sql* is a single, non-empty, tokenizable statement."""
    if not sql or not sql.strip():
        return ValidationVerdict.fail(EMPTY_QUERY)

    try:
        tokens = _tokenize(sql)
    except TokenError as e:
        return ValidationVerdict.fail(f"malformed query: {e}")

    statements = _statement_tokens(tokens)
    if not statements:
        return ValidationVerdict.fail(EMPTY_QUERY)
    if len(statements) > 1:
        return ValidationVerdict.fail(MULTIPLE_STATEMENTS)
    return ValidationVerdict.ok()


def ensure_valid_sql(sql: str) -> None:
    """Raise :class:`ValidationError` carrying the verdict's reason."""
    verdict = validate_sql(sql)
    if not verdict.is_valid:
        raise ValidationError(verdict.error or "invalid query")


def leading_keyword(sql: str) -> str | None:
    """Upper-cased first token of *sql*, or None when there is none."""
    try:
        tokens = _tokenize(sql or "")
    except TokenError:
        return None
    for token in tokens:
        if token.token_type != TokenType.SEMICOLON:
            return token.text.upper()
    return None


def classify_sql(sql: str) -> OperationClass:
    """Label *sql* as a read or a write.

    Anything that is not positively a read is a write: unknown leading
    keywords, empty text and text that fails to tokenize included.
    """
    keyword = leading_keyword(sql)
    if keyword is None or keyword not in READ_KEYWORDS:
        return OperationClass.WRITE
    if keyword in _WRAPPING_KEYWORDS and _MUTATING_VERB.search(sql):
        return OperationClass.WRITE
    return OperationClass.READ


def is_write_operation(sql: str) -> bool:
    return classify_sql(sql) is OperationClass.WRITE
