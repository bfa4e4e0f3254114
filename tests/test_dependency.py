import unittest

from pysqlderive.formation.dependency import (
    get_dependency_graph,
    resolve_column_relationships,
    sort_tables,
)
from pysqlderive.formation.object_types import (
    Column,
    ColumnRelationship,
    DependencyCycleError,
    Table,
)
from pysqlderive.model.elements import Model
from tests.params import configure

if __name__ == "__main__":
    configure()


def reference(dependent: Table, principal: Table, name: str) -> Column:
    "Adds a foreign key column to the dependent table, and registers it with the principal table."

    column = Column(name, "int", dependent, is_foreign_key=True)
    dependent.own_columns.append(column)
    principal.dependent_columns.append(column)
    return column


class TestDependency(unittest.TestCase):
    def test_graph(self) -> None:
        a, b, c = Table("A"), Table("B"), Table("C")
        reference(a, b, "bId")
        reference(a, c, "cId")
        reference(b, c, "cId")
        reference(c, c, "parentId")

        self.assertDictEqual(
            get_dependency_graph([a, b, c]), {0: {1, 2}, 1: {2}, 2: set()}
        )

    def test_sort(self) -> None:
        a, b, c, d = Table("A"), Table("B"), Table("C"), Table("D")
        reference(a, b, "bId")
        reference(b, c, "cId")
        reference(d, c, "cId")

        tables = sort_tables([a, b, c, d])
        names = [table.name for table in tables]
        self.assertCountEqual(names, ["A", "B", "C", "D"])
        for dependent, principal in [("A", "B"), ("B", "C"), ("D", "C")]:
            with self.subTest(dependent=dependent, principal=principal):
                self.assertLess(names.index(principal), names.index(dependent))

    def test_sort_deterministic(self) -> None:
        tables = [Table(name) for name in ["X", "Y", "Z"]]
        reference(tables[0], tables[2], "zId")

        first = [t.name for t in sort_tables(tables)]
        second = [t.name for t in sort_tables(tables)]
        self.assertListEqual(first, second)

    def test_self_reference(self) -> None:
        table = Table("Node")
        reference(table, table, "parentId")
        self.assertListEqual(sort_tables([table]), [table])

    def test_cycle(self) -> None:
        a, b, c = Table("A"), Table("B"), Table("C")
        reference(a, b, "bId")
        reference(b, c, "cId")
        reference(c, a, "aId")

        with self.assertRaises(DependencyCycleError) as context:
            sort_tables([a, b, c])
        self.assertListEqual(context.exception.tables, ["A", "B", "C"])

    def test_empty(self) -> None:
        self.assertListEqual(sort_tables([]), [])

    def test_resolve(self) -> None:
        model = Model("m")
        principal_type = model.create_type("Principal")
        dependent_type = model.create_type("Dependent")
        unknown_type = model.create_type("Unknown")

        principal = Table("Principal", source_type=principal_type)
        dependent = Table("Dependent", source_type=dependent_type)
        resolved = Column("principalId", "int", dependent, is_foreign_key=True)
        dropped = Column("unknownId", "int", dependent, is_foreign_key=True)

        with self.assertLogs("pysqlderive", level="DEBUG"):
            resolve_column_relationships(
                [principal, dependent],
                [
                    ColumnRelationship(resolved, principal_type),
                    ColumnRelationship(dropped, unknown_type),
                ],
            )

        self.assertListEqual(principal.dependent_columns, [resolved])
        self.assertListEqual(dependent.dependent_columns, [])


if __name__ == "__main__":
    unittest.main()
