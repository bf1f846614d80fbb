"""
SQL text helpers.

- `standardize_placeholders()` - Convert %s <-> ? for a dialect
- `quote_identifier()` - Quote table/column names
- `Condition`, `glue_conditions()` - WHERE clause fragments
- `build_select()`, `build_count()` - SELECT/COUNT construction
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'Condition',
    'glue_conditions',
    'build_select',
    'build_count',
    'standardize_placeholders',
    'quote_identifier',
]

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?
    ESCAPED_PERCENT = auto()    # %%


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str


# String literals are matched first so placeholders inside them are left alone
_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*"|`(?:[^`]|``)*`)
    |(?P<escaped>%%)
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_PLACEHOLDERS = {
    'mysql': '%s',
    'postgresql': '%s',
    'sqlite': '?',
}


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('escaped'):
            ttype = TokenType.ESCAPED_PERCENT
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0)))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def placeholder_for(dialect: str) -> str:
    """Return the positional placeholder marker for a dialect.
    """
    try:
        return _PLACEHOLDERS[dialect]
    except KeyError:
        raise ValueError(f'Unknown dialect: {dialect}') from None


def standardize_placeholders(sql: str, dialect: str = 'mysql') -> str:
    """Convert placeholders between %s and ? based on dialect.

    Parameters
        sql: SQL query string
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if not sql:
        return sql

    target = placeholder_for(dialect)
    source = '%s' if target == '?' else '?'
    if source not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH and token.text == source:
            result.append(target)
        else:
            result.append(token.text)
    return ''.join(result)


def quote_identifier(identifier: str, dialect: str = 'mysql') -> str:
    """Safely quote database identifiers.

    Dotted names (``schema.table``) are quoted part by part.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect == 'mysql':
        quote = '`'
    elif dialect in {'postgresql', 'sqlite'}:
        quote = '"'
    else:
        raise ValueError(f'Unknown dialect: {dialect}')

    return '.'.join(quote + part.replace(quote, quote * 2) + quote
                    for part in identifier.split('.'))


@dataclass
class Condition:
    """One WHERE clause fragment.

    `glue` joins this fragment to the next one (``AND``, ``OR``) and is left
    empty on the last fragment.
    """
    statement: str
    glue: str = ''


def glue_conditions(conditions: list[Condition]) -> str:
    """Concatenate condition fragments with their glue words.

    >>> glue_conditions([Condition('a = ?', 'AND'), Condition('b = ?')])
    'a = ? AND b = ?'
    """
    statement = ''
    for cond in conditions:
        statement += cond.statement
        if cond.glue:
            statement += f' {cond.glue} '
    return statement


def build_select(table: str, columns: list[str],
                 conditions: list[Condition] | None = None) -> str:
    """Build a SELECT statement from a table, columns and conditions.

    Column expressions and the table name are inserted verbatim.
    """
    statement = f"SELECT {', '.join(columns)} FROM {table}"
    if conditions:
        statement += ' WHERE ' + glue_conditions(conditions)
    logger.debug(f'Constructed statement: {statement}')
    return statement


def build_count(table: str, conditions: list[Condition] | None = None) -> str:
    """Build a COUNT(*) statement sharing the WHERE clause of `build_select`.
    """
    return build_select(table, ['COUNT(*)'], conditions)
