"""Query building shared by the relational adapters.

All row queries are built via sqlglot rather than string concatenation, so each
dialect gets its own quoting and paging syntax from the same expression.
"""

from collections.abc import Sequence

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect

from inspector.services.identifiers import CertifiedRelation, relation_table
from inspector.services.pagination import PageRequest


def page_query(
    relation: CertifiedRelation,
    page: PageRequest,
    dialect: str,
    key_columns: Sequence[str] = (),
    schema: str | None = None,
) -> str:
    """``SELECT *`` over one page, ordered by the primary key.

    Offset paging is only deterministic over a total order. Relations
    without a primary key fall back to ordering by position 1.
    T-SQL renders the page as ``OFFSET .. ROWS FETCH FIRST .. ROWS ONLY``.
    """
    table = relation_table(relation)
    if schema:
        table.set("db", exp.to_identifier(schema, quoted=True))
    if key_columns:
        keys = [exp.Column(this=exp.to_identifier(name, quoted=True)) for name in key_columns]
    else:
        keys = [exp.Literal.number(1)]
    # Ascending with the dialect's own null placement, so no NULLS clause is rendered.
    nulls_first = Dialect.get_or_raise(dialect).NULL_ORDERING == "nulls_are_small"
    query = (
        exp.select("*")
        .from_(table)
        .order_by(*(exp.Ordered(this=key, nulls_first=nulls_first) for key in keys))
        .limit(page.limit)
        .offset(page.offset)
    )
    return query.sql(dialect=dialect)


def yes_no(value: object) -> bool | None:
    """information_schema style ``'YES'``/``'NO'`` to bool."""
    if value is None:
        return None
    return str(value).strip().upper() == "YES"


def as_text(value: object) -> str | None:
    return None if value is None else str(value)
