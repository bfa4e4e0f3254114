import logging
from typing import Iterable, Optional

from strong_typing.topological import topological_sort

from .object_types import ColumnRelationship, DependencyCycleError, Table

LOGGER = logging.getLogger("pysqlderive")


def resolve_column_relationships(
    tables: list[Table],
    relationships: Iterable[ColumnRelationship],
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Registers each pending foreign key column as a dependent column of its principal table.

    Relationships whose principal type has no table (e.g. because a table filter excluded the type) are dropped.
    """

    logger = logger or LOGGER

    tables_by_type: dict[str, Table] = {}
    for table in tables:
        if table.source_type is not None:
            tables_by_type.setdefault(table.source_type.id, table)

    for relationship in relationships:
        principal = tables_by_type.get(relationship.principal_type.id)
        if principal is None:
            column = relationship.column
            logger.debug(
                "dropping relationship of column %s.%s: no table for type %r",
                column.table,
                column.name,
                relationship.principal_type.name,
            )
            continue

        principal.dependent_columns.append(relationship.column)


def _find_cycle(graph: dict[int, set[int]]) -> list[int]:
    "Returns the nodes of a cycle in a directed graph, ignoring self-loops."

    visited: set[int] = set()

    for start in graph:
        if start in visited:
            continue

        path: list[int] = []
        on_path: set[int] = set()
        stack: list[tuple[int, list[int]]] = [(start, sorted(graph[start]))]
        path.append(start)
        on_path.add(start)

        while stack:
            node, pending = stack[-1]
            if not pending:
                stack.pop()
                path.pop()
                on_path.discard(node)
                visited.add(node)
                continue

            succ = pending.pop(0)
            if succ == node or succ in visited:
                continue
            if succ in on_path:
                return path[path.index(succ) :]

            stack.append((succ, sorted(graph[succ])))
            path.append(succ)
            on_path.add(succ)

    return []


def get_dependency_graph(tables: list[Table]) -> dict[int, set[int]]:
    """
    Builds a graph of table indices where each table points to the tables it references.

    A table references another table if the other table lists a dependent column owned by the table. Self-references
    are excluded.
    """

    index_of = {id(table): index for index, table in enumerate(tables)}
    graph: dict[int, set[int]] = {index: set() for index in range(len(tables))}

    for principal_index, table in enumerate(tables):
        for column in table.dependent_columns:
            if column.table is table:
                continue

            dependent_index = index_of.get(id(column.table))
            if dependent_index is None:
                continue

            graph[dependent_index].add(principal_index)

    return graph


def sort_tables(tables: list[Table]) -> list[Table]:
    """
    Orders tables such that each table comes after all tables it references.

    The order is deterministic for a given input order.

    :raises DependencyCycleError: Distinct tables reference one another.
    """

    graph = get_dependency_graph(tables)

    # located before sorting such that the error names the tables in the cycle
    cycle = _find_cycle(graph)
    if cycle:
        raise DependencyCycleError([tables[index].name for index in cycle])

    return [tables[index] for index in topological_sort(graph)]
