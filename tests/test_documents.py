import unittest

from strong_typing.core import JsonType

from pysqlderive.dialect.mssql.builder import MSSQLDbBuilder
from pysqlderive.formation.associations import build_association_map
from pysqlderive.formation.object_types import MappingError
from pysqlderive.model.documents import (
    AttributeDocument,
    ModelDocument,
    TypeDocument,
    document_to_model,
    json_to_model,
)
from pysqlderive.model.elements import ElementKind, PrimitiveTypes
from tests.params import configure

if __name__ == "__main__":
    configure()


def department_document() -> JsonType:
    return {
        "name": "company",
        "types": [
            {
                "id": "Department",
                "name": "Department",
                "attributes": [
                    {"name": "Id", "type": "integer", "is_id": True},
                    {"name": "Name", "type": "primitive:string", "max_length": 50},
                    {
                        "name": "Employees",
                        "type": "Employee",
                        "lower": 0,
                        "upper": -1,
                        "id": "Department.Employees",
                    },
                ],
            },
            {
                "id": "Employee",
                "name": "Employee",
                "attributes": [
                    {"name": "Id", "type": "integer", "is_id": True},
                    {"name": "Level", "type": "Level"},
                ],
            },
            {
                "id": "Level",
                "name": "Level",
                "kind": "enumeration",
                "base_type": "byte",
            },
        ],
        "associations": [
            {
                "id": "A1",
                "ends": [
                    {"attribute": "Department.Employees"},
                    {"name": "Department", "type": "Department", "lower": 0},
                ],
            }
        ],
    }


class TestDocuments(unittest.TestCase):
    def test_types(self) -> None:
        model = json_to_model(department_document())
        self.assertListEqual(
            [(t.id, t.kind) for t in model.get_all_types()],
            [
                ("Department", ElementKind.CLASS),
                ("Employee", ElementKind.CLASS),
                ("Level", ElementKind.ENUMERATION),
            ],
        )

        department = model.get_type("Department")
        identity, name, employees = department.owned_attributes
        self.assertTrue(identity.is_id)
        self.assertIs(identity.type, PrimitiveTypes.integer)
        self.assertIs(name.type, PrimitiveTypes.string)
        self.assertEqual(name.max_length, 50)
        self.assertIs(employees.type, model.get_type("Employee"))
        self.assertTrue(employees.is_multivalued())

        level = model.get_type("Level")
        self.assertIs(level.base_type, PrimitiveTypes.byte)

    def test_associations(self) -> None:
        model = json_to_model(department_document())
        (association,) = model.associations
        member_end, owned_end = association.member_ends

        department = model.get_type("Department")
        self.assertIs(member_end, department.owned_attributes[2])
        self.assertIs(member_end.association, association)
        self.assertIs(owned_end.owner, association)
        self.assertIs(owned_end.type, department)
        self.assertEqual(owned_end.lower, 0)

        association_map = build_association_map(model)
        self.assertIn("Employee", association_map)

    def test_schema(self) -> None:
        database = MSSQLDbBuilder().build(json_to_model(department_document()))
        self.assertListEqual(
            [t.name for t in database.tables], ["Department", "Employee"]
        )
        employee = database.get_table("Employee")
        self.assertListEqual(
            [c.name for c in employee.own_columns], ["Id", "Level", "Id_Employees"]
        )

    def test_upper_bound(self) -> None:
        data = department_document()
        assert isinstance(data, dict)
        data["associations"] = [
            {
                "id": "A1",
                "ends": [
                    {"attribute": "Department.Employees"},
                    {"name": "Colleagues", "type": "Employee", "lower": 0, "upper": -1},
                ],
            }
        ]
        model = json_to_model(data)

        department = model.get_type("Department")
        employees = department.owned_attributes[2]
        self.assertIsNone(employees.upper)
        self.assertEqual(department.owned_attributes[1].upper, 1)

        (association,) = model.associations
        self.assertIsNone(association.member_ends[1].upper)
        self.assertTrue(association.member_ends[1].is_multivalued())

    def test_invalid_upper_bound(self) -> None:
        document = ModelDocument(
            "m",
            types=[
                TypeDocument(
                    "Order",
                    "Order",
                    attributes=[AttributeDocument("Lines", "integer", upper=-2)],
                )
            ],
        )
        with self.assertRaises(MappingError):
            document_to_model(document)

    def test_unknown_type(self) -> None:
        document = ModelDocument(
            "m",
            types=[
                TypeDocument(
                    "Order", "Order", attributes=[AttributeDocument("Item", "Item")]
                )
            ],
        )
        with self.assertRaises(MappingError):
            document_to_model(document)

    def test_duplicate_type(self) -> None:
        document = ModelDocument(
            "m", types=[TypeDocument("T", "First"), TypeDocument("T", "Second")]
        )
        with self.assertRaises(MappingError):
            document_to_model(document)

    def test_unknown_attribute(self) -> None:
        data = department_document()
        assert isinstance(data, dict)
        data["associations"] = [{"id": "A2", "ends": [{"attribute": "Missing"}]}]
        with self.assertRaises(MappingError):
            json_to_model(data)

    def test_empty_end(self) -> None:
        data = department_document()
        assert isinstance(data, dict)
        data["associations"] = [{"id": "A3", "ends": [{"name": "Nothing"}]}]
        with self.assertRaises(MappingError):
            json_to_model(data)


if __name__ == "__main__":
    unittest.main()
