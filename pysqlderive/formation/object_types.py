from dataclasses import dataclass, field
from typing import Optional

from ..model.elements import Property, Type
from ..model.id_types import LocalId


class MappingError(RuntimeError):
    "Raised when an element of the object model cannot map to a relational entity."


class FormationError(RuntimeError):
    "Raised when the object model cannot form a consistent relational schema."


class IdentityPropertyError(FormationError):
    """
    Raised when a type has no identity property but one is structurally required.

    This happens when a foreign key column references the type, or a one-to-many relationship needs the type's
    identity column.
    """

    type: Type

    def __init__(self, cause: str, type: Type) -> None:
        super().__init__(cause)
        self.type = type

    def __str__(self) -> str:
        return f"type {self.type.name or self.type.id}: {self.args[0]}"


class TableFormationError(FormationError):
    "Raised when a table cannot be built from its source type."

    table: str

    def __init__(self, cause: str, table: str) -> None:
        super().__init__(cause)
        self.table = table

    def __str__(self) -> str:
        return f"table {LocalId(self.table)}: {self.args[0]}"


class DependencyCycleError(FormationError):
    "Raised when distinct tables reference one another, and no emission order satisfies all foreign keys."

    tables: list[str]

    def __init__(self, tables: list[str]) -> None:
        super().__init__("tables depend on each other")
        self.tables = tables

    def __str__(self) -> str:
        cycle = " -> ".join(str(LocalId(t)) for t in self.tables)
        return f"{self.args[0]}: {cycle}"


@dataclass(eq=False)
class Column:
    """
    A column in a relational table.

    :param name: The column name.
    :param sql_type_name: The SQL type name, e.g. `nvarchar`.
    :param table: The table that owns the column.
    :param length: Column length, a number as a string or `max`, for types that take a length.
    :param precision: Total number of digits to the left and right of the decimal point.
    :param scale: Number of digits to the right of the decimal point.
    :param is_identity: True if this column is the identity (auto-increment) column of the owning table.
    :param is_required: True if the column does not allow NULL values.
    :param is_foreign_key: True if this column references the identity column of another table.
    :param source_property: The property from which the column was created. For foreign key columns, this is the
        referencing property, which can be owned by a type other than the table's source type.
    :param primary_key_property: The identity property of the referenced type, set only on foreign key columns.
    :param role: Disambiguates multiple foreign key columns that reference the same table.
    :param is_navigable: True if the column maps to an attribute of the table's source type.
    :param is_many: True if the column exists only to realize a one-to-many relationship declared on another type.
    """

    name: str
    sql_type_name: str
    table: "Table" = field(repr=False)
    length: Optional[str] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_identity: bool = False
    is_required: bool = False
    is_foreign_key: bool = False
    source_property: Optional[Property] = field(default=None, repr=False)
    primary_key_property: Optional[Property] = field(default=None, repr=False)
    role: Optional[str] = None
    is_navigable: bool = False
    is_many: bool = False

    @property
    def is_nullable(self) -> bool:
        return not self.is_required

    @property
    def object_property(self) -> Optional[Property]:
        "Alias for the model property the column was created from."

        return self.source_property

    @property
    def type_name(self) -> str:
        "SQL type name as it appears in a column definition."

        return self.sql_type_name

    @property
    def type_spec(self) -> str:
        "SQL type name with optional length, or precision and scale."

        if self.length:
            return f"{self.type_name}({self.length})"
        if self.precision or self.scale:
            spec = ",".join(str(v) for v in (self.precision, self.scale) if v)
            return f"{self.type_name}({spec})"
        return self.type_name

    @property
    def column_spec(self) -> str:
        nullable = " NOT NULL" if not self.is_nullable else ""
        return f"{LocalId(self.name)} {self.type_spec}{nullable}"

    def __str__(self) -> str:
        return self.column_spec


@dataclass(eq=False)
class Table:
    """
    A relational table.

    :param name: The table name.
    :param source_type: The type the table was created from, or `None` for a junction table.
    :param own_columns: Columns derived from the attributes of the source type, followed by foreign key columns that
        realize one-to-many relationships.
    :param dependent_columns: Foreign key columns on other tables that reference this table.
    :param is_junction_table: True if the table realizes a many-to-many relationship.
    """

    name: str
    source_type: Optional[Type] = field(default=None, repr=False)
    own_columns: list[Column] = field(default_factory=list, repr=False)
    dependent_columns: list[Column] = field(default_factory=list, repr=False)
    is_junction_table: bool = False

    @property
    def object_type(self) -> Optional[Type]:
        return self.source_type

    def get_identity_column(self) -> Optional[Column]:
        "The first own column marked as identity, if any."

        for column in self.own_columns:
            if column.is_identity:
                return column
        return None

    def __str__(self) -> str:
        return str(LocalId(self.name))


@dataclass(eq=False)
class Database:
    """
    A relational schema derived from an object model.

    :param tables: Tables in dependency order: a table appears after all tables it references.
    """

    tables: list[Table] = field(default_factory=list)

    def get_table(self, name: str) -> Table:
        for table in self.tables:
            if table.name == name:
                return table

        raise KeyError(f"table not found: {name}")


@dataclass
class ColumnRelationship:
    """
    A foreign key column whose principal table is yet to be resolved.

    :param column: The foreign key column.
    :param principal_type: The type whose table the column references.
    """

    column: Column
    principal_type: Type


@dataclass
class TableDefinition:
    """
    The result of building a table from a single type.

    :param table: The table with its own columns.
    :param relationships: Foreign key columns of the table pending resolution against principal tables.
    """

    table: Table
    relationships: list[ColumnRelationship] = field(default_factory=list)


class ObjectFactory:
    "Creates new column, table and database instances."

    @property
    def column_class(self) -> type[Column]:
        "The object type instantiated for table columns."

        return Column

    @property
    def table_class(self) -> type[Table]:
        "The object type instantiated for tables."

        return Table

    @property
    def database_class(self) -> type[Database]:
        "The object type instantiated for the database."

        return Database
