"""
Render query ASTs into psycopg composable SQL.

Identifiers are quoted through `psycopg.sql.Identifier` and every value is
passed as a bound parameter, so caller data never lands in the statement text.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from psycopg import sql

from rowkeeper.query.ast import (
    BoolExpr,
    Call,
    Column,
    Cond,
    Delete,
    Expr,
    FieldRef,
    Insert,
    Limit,
    Not,
    OrderBy,
    Query,
    Select,
    Update,
)

Rendered = Tuple[sql.Composable, List[Any]]


def _ident(ref: FieldRef) -> sql.Composable:
    if isinstance(ref, Column):
        return sql.Identifier(ref.table, ref.name)
    if ref == "*":
        return sql.SQL("*")
    return sql.Identifier(ref)


def _fields(fields: Any) -> sql.Composable:
    if fields == "*":
        return sql.SQL("*")
    if isinstance(fields, Call):
        return sql.SQL("{}({})").format(sql.SQL(fields.func.upper()), _ident(fields.field))
    return sql.SQL(", ").join(_ident(ref) for ref in fields)


def render_expr(expr: Expr, params: List[Any]) -> sql.Composable:
    if isinstance(expr, BoolExpr):
        return sql.SQL("({} {} {})").format(
            render_expr(expr.left, params),
            sql.SQL(expr.op.upper()),
            render_expr(expr.right, params),
        )
    if isinstance(expr, Not):
        return sql.SQL("NOT ({})").format(render_expr(expr.expr, params))
    if isinstance(expr, Cond):
        return _render_cond(expr, params)
    raise TypeError(f"not a where expression: {expr!r}")


def _render_cond(cond: Cond, params: List[Any]) -> sql.Composable:
    lhs = _ident(cond.field)
    op = cond.op.lower()
    value = cond.value

    if isinstance(value, Column):
        return sql.SQL("{} {} {}").format(lhs, sql.SQL(op.upper()), _ident(value))
    if value is None:
        if op in ("=", "is"):
            return sql.SQL("{} IS NULL").format(lhs)
        if op in ("!=", "<>", "is not"):
            return sql.SQL("{} IS NOT NULL").format(lhs)
    if op in ("in", "not in"):
        items = list(value)
        if not items:
            return sql.SQL("FALSE" if op == "in" else "TRUE")
        params.extend(items)
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in items)
        return sql.SQL("{} {} ({})").format(lhs, sql.SQL(op.upper()), placeholders)

    params.append(value)
    return sql.SQL("{} {} {}").format(lhs, sql.SQL(op.upper()), sql.Placeholder())


def _where(expr: Optional[Expr], params: List[Any]) -> sql.Composable:
    if expr is None:
        return sql.SQL("")
    return sql.SQL(" WHERE {}").format(render_expr(expr, params))


def _order_term(term: Any) -> sql.Composable:
    if isinstance(term, tuple):
        ref, direction = term
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"unsupported sort direction: {direction!r}")
        return sql.SQL("{} {}").format(_ident(ref), sql.SQL(direction.upper()))
    return _ident(term)


def _extras(select: Select, params: List[Any]) -> sql.Composable:
    parts: List[sql.Composable] = []
    order_terms = [term for extra in select.extras if isinstance(extra, OrderBy) for term in extra.terms]
    if order_terms:
        parts.append(
            sql.SQL(" ORDER BY {}").format(sql.SQL(", ").join(_order_term(t) for t in order_terms))
        )
    limits = [extra for extra in select.extras if isinstance(extra, Limit)]
    if limits:
        limit = limits[-1]
        params.append(limit.count)
        parts.append(sql.SQL(" LIMIT {}").format(sql.Placeholder()))
        if limit.offset is not None:
            params.append(limit.offset)
            parts.append(sql.SQL(" OFFSET {}").format(sql.Placeholder()))
    return sql.Composed(parts)


def render(query: Query) -> Rendered:
    """
    Render a query AST.

    Returns
    -------
    tuple
        ``(statement, params)`` ready for ``cursor.execute``.
    """
    params: List[Any] = []
    if isinstance(query, Select):
        statement = sql.SQL("SELECT {} FROM {}{}{}").format(
            _fields(query.fields),
            sql.SQL(", ").join(sql.Identifier(table) for table in query.tables),
            _where(query.where, params),
            _extras(query, params),
        )
    elif isinstance(query, Insert) and not query.fields:
        statement = sql.SQL("INSERT INTO {} DEFAULT VALUES").format(sql.Identifier(query.table))
    elif isinstance(query, Insert):
        rows = []
        for row in query.rows:
            params.extend(row)
            rows.append(
                sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() for _ in row))
            )
        statement = sql.SQL("INSERT INTO {} ({}) VALUES {}").format(
            sql.Identifier(query.table),
            sql.SQL(", ").join(sql.Identifier(name) for name in query.fields),
            sql.SQL(", ").join(rows),
        )
    elif isinstance(query, Update):
        assignments = []
        for name, value in query.assignments:
            params.append(value)
            assignments.append(sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder()))
        statement = sql.SQL("UPDATE {} SET {}{}").format(
            sql.Identifier(query.table),
            sql.SQL(", ").join(assignments),
            _where(query.where, params),
        )
    elif isinstance(query, Delete):
        statement = sql.SQL("DELETE FROM {}{}").format(
            sql.Identifier(query.table), _where(query.where, params)
        )
    else:
        raise TypeError(f"not a query: {query!r}")
    return statement, params


__all__ = ["render", "render_expr", "Rendered"]
