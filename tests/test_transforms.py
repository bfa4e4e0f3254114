import unittest

from pysqlderive.dialect.mssql.builder import MSSQLDbBuilder
from pysqlderive.model.elements import ElementKind, Model, PrimitiveTypes
from pysqlderive.model.transforms import AddIdentityTransform
from tests import models
from tests.params import configure

if __name__ == "__main__":
    configure()


class TestAddIdentityTransform(unittest.TestCase):
    def test_add_identity(self) -> None:
        model = models.missing_identity()
        AddIdentityTransform(PrimitiveTypes.integer).apply(model)

        for typ in model.get_all_types():
            with self.subTest(type=typ.name):
                identity = typ.owned_attributes[0]
                self.assertEqual(identity.name, "Id")
                self.assertTrue(identity.is_id)
                self.assertIs(identity.type, PrimitiveTypes.integer)
                self.assertIs(identity.owner, typ)

    def test_name_callback(self) -> None:
        model = Model("m")
        model.create_type("Invoice").add_attribute("Total", PrimitiveTypes.decimal)

        AddIdentityTransform(
            PrimitiveTypes.long, name_callback=lambda typ: f"{typ.name}Id"
        ).apply(model)

        (invoice,) = model.get_all_types()
        self.assertListEqual(
            [p.name for p in invoice.owned_attributes], ["InvoiceId", "Total"]
        )

    def test_existing_identity(self) -> None:
        model = models.department_employees()
        department = model.get_type("Department")
        names = [p.name for p in department.owned_attributes]

        with self.assertLogs("pysqlderive", level="DEBUG"):
            AddIdentityTransform(PrimitiveTypes.integer).apply(model)
        self.assertListEqual([p.name for p in department.owned_attributes], names)

    def test_value_types(self) -> None:
        model = Model("m")
        status = model.create_type(
            "Status", ElementKind.ENUMERATION, base_type=PrimitiveTypes.byte
        )
        AddIdentityTransform(PrimitiveTypes.integer).apply(model)
        self.assertListEqual(status.owned_attributes, [])

    def test_build(self) -> None:
        model = models.missing_identity()
        AddIdentityTransform(PrimitiveTypes.integer).apply(model)

        database = MSSQLDbBuilder().build(model)
        for table in database.tables:
            with self.subTest(table=table.name):
                self.assertEqual(table.own_columns[0].name, "Id")
                self.assertTrue(table.own_columns[0].is_identity)


if __name__ == "__main__":
    unittest.main()
