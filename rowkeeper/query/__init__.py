"""
Query AST values and the pure builder functions that produce them.
"""

from rowkeeper.query.ast import (
    BoolExpr,
    Call,
    Column,
    Cond,
    Delete,
    Insert,
    Limit,
    Not,
    OrderBy,
    Select,
    Update,
)
from rowkeeper.query.builder import and_expr, append_extras, as_expr, make_where_expr, or_expr

__all__ = [
    "BoolExpr",
    "Call",
    "Column",
    "Cond",
    "Delete",
    "Insert",
    "Limit",
    "Not",
    "OrderBy",
    "Select",
    "Update",
    "and_expr",
    "append_extras",
    "as_expr",
    "make_where_expr",
    "or_expr",
]
