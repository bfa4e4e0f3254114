import unittest

from pysqlderive.formation.builder import DbBuilder, DbOptions
from pysqlderive.formation.object_types import (
    DependencyCycleError,
    IdentityPropertyError,
    Table,
)
from pysqlderive.model.elements import Model, PrimitiveTypes
from tests import models
from tests.params import configure

if __name__ == "__main__":
    configure()


def column_names(table: Table) -> list[str]:
    return [column.name for column in table.own_columns]


class TestBuilder(unittest.TestCase):
    def test_one_to_many_attribute(self) -> None:
        database = DbBuilder().build(models.department_employees())
        self.assertListEqual(
            [table.name for table in database.tables], ["Department", "Employee"]
        )

        department = database.get_table("Department")
        employee = database.get_table("Employee")
        self.assertListEqual(column_names(department), ["Id", "Name"])
        self.assertListEqual(column_names(employee), ["Id", "Name", "Id_Employees"])

        column = employee.own_columns[2]
        self.assertTrue(column.is_foreign_key)
        self.assertTrue(column.is_many)
        self.assertFalse(column.is_navigable)
        self.assertTrue(column.is_nullable)
        self.assertEqual(column.role, "Employees")
        self.assertEqual(column.sql_type_name, "integer")
        self.assertIs(column.table, employee)
        self.assertEqual(column.primary_key_property.name, "Id")
        self.assertIs(column.primary_key_property.owner, department.source_type)

        self.assertEqual(len(department.dependent_columns), 1)
        self.assertIs(department.dependent_columns[0], column)
        self.assertListEqual(employee.dependent_columns, [])

    def test_one_to_many_association(self) -> None:
        database = DbBuilder().build(models.department_employees_association())
        employee = database.get_table("Employee")
        self.assertListEqual(column_names(employee), ["Id", "Name", "Id_Employees"])
        self.assertTrue(employee.own_columns[2].is_many)
        self.assertListEqual(
            column_names(database.get_table("Department")), ["Id", "Name"]
        )

    def test_one_to_many_bidirectional(self) -> None:
        database = DbBuilder().build(models.department_employees_bidirectional())
        employee = database.get_table("Employee")
        self.assertListEqual(column_names(employee), ["Id", "DepartmentId"])

        column = employee.own_columns[1]
        self.assertTrue(column.is_foreign_key)
        self.assertFalse(column.is_many)
        self.assertTrue(column.is_navigable)
        self.assertFalse(column.is_nullable)

        department = database.get_table("Department")
        self.assertListEqual(column_names(department), ["Id"])
        self.assertListEqual(department.dependent_columns, [column])

    def test_single_valued_references(self) -> None:
        database = DbBuilder().build(models.person_addresses())
        self.assertListEqual(
            [table.name for table in database.tables], ["Address", "Person"]
        )

        person = database.get_table("Person")
        self.assertListEqual(
            column_names(person), ["Id", "Name", "homeAddressId", "workAddressId"]
        )
        home, work = person.own_columns[2:]
        self.assertFalse(home.is_nullable)
        self.assertTrue(work.is_nullable)
        for column in [home, work]:
            with self.subTest(column=column.name):
                self.assertTrue(column.is_foreign_key)
                self.assertFalse(column.is_identity)
                self.assertEqual(column.sql_type_name, "integer")
                self.assertIs(column.source_property.owner, person.source_type)

        address = database.get_table("Address")
        self.assertListEqual(
            [c.name for c in address.dependent_columns],
            ["homeAddressId", "workAddressId"],
        )

    def test_identity(self) -> None:
        database = DbBuilder().build(models.person_addresses())
        for table in database.tables:
            with self.subTest(table=table.name):
                identity = table.get_identity_column()
                assert identity is not None
                self.assertEqual(identity.name, "Id")
                self.assertFalse(identity.is_nullable)

    def test_duplicate_identity(self) -> None:
        model = Model("duplicate")
        typ = model.create_type("Item")
        typ.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
        typ.add_attribute("Code", PrimitiveTypes.string, is_id=True)

        with self.assertLogs("pysqlderive", level="WARNING"):
            database = DbBuilder().build(model)

        table = database.get_table("Item")
        self.assertListEqual(
            [c.name for c in table.own_columns if c.is_identity], ["Id"]
        )

    def test_value_types(self) -> None:
        database = DbBuilder().build(models.value_types())
        self.assertListEqual([table.name for table in database.tables], ["Product"])

        product = database.get_table("Product")
        self.assertListEqual(
            [(c.name, c.sql_type_name) for c in product.own_columns],
            [
                ("Id", "uuid"),
                ("Status", "smallint"),
                ("Price", "decimal"),
                ("Weight", "decimal"),
                ("Available", "boolean"),
            ],
        )

    def test_table_filter(self) -> None:
        builder = DbBuilder().add_table_filter(lambda typ: typ.name != "Department")
        with self.assertLogs("pysqlderive", level="DEBUG") as logs:
            database = builder.build(models.department_employees())

        self.assertListEqual([table.name for table in database.tables], ["Employee"])
        self.assertTrue(any("dropping relationship" in line for line in logs.output))

    def test_table_filter_intersection(self) -> None:
        options = DbOptions(table_filters=[lambda typ: typ.name != "Order"])
        builder = DbBuilder(options).add_table_filter(
            lambda typ: typ.name != "Customer"
        )
        database = builder.build(models.chain())
        self.assertListEqual([table.name for table in database.tables], ["Country"])

    def test_dependency_order(self) -> None:
        database = DbBuilder().build(models.chain())
        self.assertListEqual(
            [table.name for table in database.tables],
            ["Country", "Customer", "Order"],
        )

    def test_self_reference(self) -> None:
        database = DbBuilder().build(models.self_reference())
        employee = database.get_table("Employee")
        self.assertListEqual(column_names(employee), ["Id", "managerId"])
        self.assertIs(employee.dependent_columns[0], employee.own_columns[1])

    def test_cycle(self) -> None:
        with self.assertRaises(DependencyCycleError) as context:
            DbBuilder().build(models.cyclic())

        self.assertListEqual(context.exception.tables, ["First", "Second"])
        self.assertEqual(
            str(context.exception), "tables depend on each other: [First] -> [Second]"
        )

    def test_missing_identity(self) -> None:
        with self.assertRaises(IdentityPropertyError) as context:
            DbBuilder().build(models.missing_identity())

        self.assertEqual(context.exception.type.name, "Department")
        self.assertIn("Department", str(context.exception))

    def test_unnamed_type(self) -> None:
        model = Model("anonymous")
        typ = model.create_type("")
        typ.add_attribute("Id", PrimitiveTypes.integer, is_id=True)

        with self.assertLogs("pysqlderive", level="WARNING"):
            database = DbBuilder().build(model)
        self.assertListEqual(database.tables, [])

    def test_rebuild(self) -> None:
        model = models.department_employees()
        builder = DbBuilder()
        first = builder.build(model)
        second = builder.build(model)

        self.assertIsNot(first.tables[0], second.tables[0])
        self.assertEqual(
            len(second.get_table("Department").dependent_columns),
            len(first.get_table("Department").dependent_columns),
        )


if __name__ == "__main__":
    unittest.main()
