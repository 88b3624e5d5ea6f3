from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from rowkeeper.domain.records import Record
from rowkeeper.entity import Entity, Registry
from rowkeeper.serialize import to_strings


def _relations_summary(entity: Entity) -> str:
    parts = []
    for name, relation in sorted(entity.schema.relations.items()):
        label = f"{relation.kind.value}:{name}"
        if relation.join_table:
            label = f"{label} via {relation.join_table}"
        parts.append(label)
    return "\n".join(parts) or "-"


def print_entities(registry: Registry, console: Optional[Console] = None) -> None:
    """
    Render the registered entities and their relations as a rich table.
    """
    console = console or Console()

    if not len(registry):
        console.print("[yellow]No entities registered.[/yellow]")
        return

    table = Table(title="Registered entities", box=box.ROUNDED)
    table.add_column("Entity", style="cyan", no_wrap=True)
    table.add_column("Table", style="magenta")
    table.add_column("Fields", style="green")
    table.add_column("Discriminator", style="yellow")
    table.add_column("Relations", style="blue")

    for entity in sorted(registry, key=lambda e: e.name):
        schema = entity.schema
        fields = ", ".join(
            f"{d.name}:{d.type.value}{'' if d.nullable else '!'}" for d in schema.db_fields
        )
        table.add_row(
            schema.name,
            schema.table,
            fields,
            schema.type_field or "-",
            _relations_summary(entity),
        )

    console.print(table)


def print_records(
    entity: Entity, records: Sequence[Record], console: Optional[Console] = None
) -> None:
    """
    Render records of one entity, one row per record, using to_strings.
    """
    console = console or Console()

    if not records:
        console.print(f"[yellow]No {entity.name} records.[/yellow]")
        return

    table = Table(title=f"{entity.name} ({entity.schema.table})", box=box.ROUNDED)
    for name in entity.schema.db_field_names:
        table.add_column(name, style="cyan" if name == "id" else None)

    rows: List[List[str]] = to_strings(entity.schema, list(records))
    for row in rows:
        table.add_row(
            *(value.decode("utf-8", "replace") if isinstance(value, bytes) else value for value in row)
        )

    console.print(table)


__all__ = ["print_entities", "print_records"]
