"""
Strategies that answer which name, SQL type and column facets a derived object gets.

Builders receive provider instances through their options. Subclass a provider and override individual methods to
customize a naming or type mapping decision.
"""

from typing import ClassVar, Optional, Union

from .formation.inspection import find_identity_property, is_relationship
from .formation.object_types import IdentityPropertyError, MappingError
from .model.elements import Property, Type


class SqlTypeNameProvider:
    "Maps types and typed elements of the object model to ANSI SQL type names."

    type_names: ClassVar[dict[str, str]] = {
        "boolean": "boolean",
        "integer": "integer",
        "long": "bigint",
        "short": "smallint",
        "byte": "smallint",
        "real": "real",
        "double": "double precision",
        "decimal": "decimal",
        "string": "varchar",
        "date": "date",
        "time": "time",
        "dateTime": "timestamp",
        "binary": "varbinary",
        "object": "blob",
    }

    def get_type_name(self, element: Union[Property, Type]) -> Optional[str]:
        """
        Returns the SQL type name of a type or a typed element.

        A property that references an entity type takes the SQL type of the identity property of that type.
        """

        if isinstance(element, Property):
            return self.get_type_name_for_property(element)
        else:
            return self.get_type_name_for_type(element)

    def get_type_name_for_property(self, prop: Property) -> Optional[str]:
        if prop.type is None:
            raise MappingError(
                f"unable to provide a type name for property {prop.name!r} because it has no type"
            )
        return self.get_type_name_for_type(prop.type)

    def get_type_name_for_type(self, typ: Type) -> Optional[str]:
        if typ.is_data_type():
            return self.get_data_type_name(typ)

        id_property = find_identity_property(typ)
        if id_property is None:
            raise IdentityPropertyError(
                "unable to determine SQL type of reference; type has no attribute with `is_id` set",
                typ,
            )
        return self.get_type_name(id_property)

    def get_data_type_name(self, typ: Type) -> Optional[str]:
        if typ.is_enumeration():
            if typ.base_type is not None:
                return self.get_type_name(typ.base_type)
            return self.type_names["integer"]

        return self.type_names.get(typ.name, typ.name)


class SqlObjectNameProvider:
    "Derives names of tables, columns and parameters from the object model."

    def get_table_name(self, typ: Type) -> str:
        return typ.name

    def get_column_name(self, prop: Property) -> str:
        return prop.name

    def get_foreign_key_column_name(self, dependent_property: Property) -> str:
        "Name of the foreign key column that corresponds to a referencing property, e.g. `departmentId`."

        return f"{dependent_property.name}Id"

    def get_parameter_name(self, column_name: str, is_multivalued: bool) -> str:
        "Name of a procedure parameter (without prefix) that corresponds to a column."

        return column_name

    def get_column_alias(self, table_name: str, column_name: str) -> str:
        return f"{table_name}_{column_name}"


class SqlColumnSpecProvider:
    "Determines length, precision and scale of columns."

    def get_length(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[str]:
        return None

    def get_precision(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[int]:
        return None

    def get_scale(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[int]:
        return None

    def is_relationship(self, prop: Property) -> bool:
        return is_relationship(prop)
