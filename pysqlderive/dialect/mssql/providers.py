from typing import ClassVar, Optional

from pysqlderive.formation.object_types import Column, MappingError
from pysqlderive.model.elements import Property, Type
from pysqlderive.providers import (
    SqlColumnSpecProvider,
    SqlObjectNameProvider,
    SqlTypeNameProvider,
)

from .object_types import QueryType


def upper_camel_case(name: str) -> str:
    "Converts a lowerCamelCase name to UpperCamelCase, e.g. `nvarchar` to `Nvarchar`."

    return name[:1].upper() + name[1:]


class MSSQLTypeNameProvider(SqlTypeNameProvider):
    "Maps types and typed elements of the object model to Microsoft SQL Server type names."

    type_names: ClassVar[dict[str, str]] = {
        "boolean": "bit",
        "integer": "int",
        "long": "bigint",
        "short": "smallint",
        "byte": "tinyint",
        "real": "real",
        "double": "float",
        "decimal": "decimal",
        "string": "nvarchar",
        "date": "date",
        "time": "time",
        "dateTime": "datetime2",
        "uuid": "uniqueidentifier",
        "binary": "varbinary",
        "object": "varbinary",
    }

    def get_type_name_for_property(self, prop: Property) -> Optional[str]:
        if prop.type is None:
            return self.type_names["integer"]
        return super().get_type_name_for_property(prop)


class MSSQLObjectNameProvider(SqlObjectNameProvider):
    "Derives names of tables, columns, keys, table types and stored procedures for Microsoft SQL Server."

    def get_primary_key_name(self, typ: Type) -> str:
        return f"PK_{typ.name}"

    def get_foreign_key_name(
        self, foreign_key_property: Property, primary_key_property: Property
    ) -> str:
        "Name of the foreign key constraint, e.g. `FK_Address_homeAddress`."

        dependent_name = foreign_key_property.name or foreign_key_property.get_type_name()
        principal = primary_key_property.owner
        if not isinstance(principal, Type):
            raise MappingError(
                f"identity property {primary_key_property.name!r} is not owned by a type"
            )
        return f"FK_{principal.name}_{dependent_name}"

    def get_simple_table_type_name(self, typ: Type, sql_type_name: str) -> str:
        "Name of a single-column table type whose column has the given SQL type, e.g. `IntTable`."

        return f"{upper_camel_case(sql_type_name)}Table"

    def get_simple_table_type_column_name(self, sql_type_name: str) -> str:
        return "Value"

    def get_complex_table_type_name(self, typ: Type) -> str:
        return f"TT_{typ.name}"

    def get_parameter_name(self, column_name: str, is_multivalued: bool) -> str:
        return f"{column_name}Table" if is_multivalued else column_name

    def get_stored_procedure_name(
        self,
        query_type: QueryType,
        model_type: Type,
        dependent_column: Optional[Column] = None,
    ) -> str:
        if not model_type.name:
            raise MappingError(
                f"cannot name stored procedure: model type {model_type.id!r} has no name"
            )

        name = model_type.name
        if query_type is QueryType.INSERT:
            return f"Insert{name}"
        elif query_type is QueryType.UPDATE:
            return f"Update{name}"
        elif query_type is QueryType.SELECT_SINGLE:
            return f"Select{name}ById"
        elif query_type is QueryType.DELETE:
            return f"Delete{name}ById"
        elif query_type is QueryType.UPDATE_RELATIONSHIP:
            if dependent_column is None:
                raise MappingError(
                    f"cannot name relationship update for {name!r} without dependent column"
                )
            dependent_type = dependent_column.table.source_type
            relation = dependent_column.role or (
                dependent_type.name
                if dependent_type is not None
                else dependent_column.table.name
            )
            return f"Update{name}{relation}"
        else:
            raise NotImplementedError(f"unsupported query type: {query_type}")


class MSSQLColumnSpecProvider(SqlColumnSpecProvider):
    "Determines column length, precision and scale for Microsoft SQL Server types."

    length_types: ClassVar[frozenset[str]] = frozenset(
        ["binary", "varbinary", "char", "nchar", "varchar", "nvarchar"]
    )
    fixed_length_types: ClassVar[frozenset[str]] = frozenset(["binary", "char", "nchar"])

    def requires_length(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> bool:
        return sql_type_name in self.length_types

    def get_length(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[str]:
        if not self.requires_length(sql_type_name, prop):
            return None

        if prop is not None and prop.max_length is not None:
            return str(prop.max_length)

        is_single_valued = prop is not None and not prop.is_multivalued()
        if is_single_valued and sql_type_name in self.fixed_length_types:
            return "1"

        return "max"

    def get_precision(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[int]:
        if sql_type_name != "decimal":
            return None
        if prop is not None and prop.precision is not None:
            return prop.precision
        return 18

    def get_scale(
        self, sql_type_name: str, prop: Optional[Property] = None
    ) -> Optional[int]:
        if sql_type_name != "decimal":
            return None
        if prop is not None and prop.scale is not None:
            return prop.scale
        return 2

    def requires_simple_table_type(self, typ: Type) -> bool:
        """
        True if a table type created for the given type should have a single column of the matching SQL type.

        False if the table type should have a column for each attribute of the type.
        """

        return typ.is_data_type()
