import enum
import logging
from dataclasses import dataclass, field
from typing import ClassVar, Optional

from pysqlderive.formation.object_types import Column, Database, ObjectFactory, Table
from pysqlderive.model.elements import Property, Type
from pysqlderive.model.id_types import LocalId, ParameterId, quote

LOGGER = logging.getLogger("pysqlderive")


@enum.unique
class MSSQLKeyType(enum.Enum):
    "Kind of a key constraint."

    PRIMARY = "primary"
    FOREIGN = "foreign"


@dataclass
class MSSQLKey:
    """
    A primary or foreign key constraint on a single column.

    :param name: Name of the constraint.
    :param key_type: Whether the constraint is a primary or a foreign key.
    :param column_name: The column the constraint applies to.
    :param primary_key_table_name: The referenced table (foreign keys only).
    :param primary_key_column_name: The referenced column (foreign keys only).
    :param cascade_on_delete: Whether deleting the referenced row deletes the referencing rows.
    """

    name: str
    key_type: MSSQLKeyType
    column_name: str
    primary_key_table_name: Optional[str] = None
    primary_key_column_name: Optional[str] = None
    cascade_on_delete: bool = False

    @property
    def spec(self) -> str:
        if self.key_type is MSSQLKeyType.PRIMARY:
            return f"PRIMARY KEY CLUSTERED ({LocalId(self.column_name)})"

        assert self.primary_key_table_name is not None
        assert self.primary_key_column_name is not None
        cascade = " ON DELETE CASCADE" if self.cascade_on_delete else ""
        return (
            f"FOREIGN KEY ({LocalId(self.column_name)}) "
            f"REFERENCES {LocalId(self.primary_key_table_name)} ({LocalId(self.primary_key_column_name)})"
            f"{cascade}"
        )

    def __str__(self) -> str:
        return f"CONSTRAINT {LocalId(self.name)} {self.spec}"


class MSSQLColumn(Column):
    "A column in a Microsoft SQL Server table or user-defined table type."

    # types that admit the IDENTITY property
    identity_types: ClassVar[frozenset[str]] = frozenset(
        ["tinyint", "smallint", "int", "bigint", "decimal", "numeric"]
    )

    @property
    def type_name(self) -> str:
        return str(LocalId(self.sql_type_name))

    @property
    def is_auto_increment(self) -> bool:
        "True if the database generates values of this identity column."

        return self.is_identity and self.sql_type_name in self.identity_types

    @property
    def column_spec(self) -> str:
        identity = " IDENTITY(1,1)" if self.is_auto_increment else ""
        nullable = " NOT NULL" if not self.is_nullable else ""
        return f"{LocalId(self.name)} {self.type_spec}{identity}{nullable}"


@dataclass(eq=False)
class MSSQLTable(Table):
    """
    A table or user-defined table type in a Microsoft SQL Server database.

    :param keys: Primary and foreign key constraints of the table.
    """

    keys: list[MSSQLKey] = field(default_factory=list, repr=False)

    @property
    def constraints(self) -> list[MSSQLKey]:
        return self.keys

    def create_stmt(self) -> str:
        defs: list[str] = []
        defs.extend(str(c) for c in self.own_columns)
        defs.extend(str(k) for k in self.keys)
        definition = ",\n".join(defs)
        return f"CREATE TABLE {LocalId(self.name)} (\n{definition}\n);"

    def drop_if_exists_stmt(self) -> str:
        return f"IF OBJECT_ID({quote(self.name)}, 'U') IS NOT NULL DROP TABLE {LocalId(self.name)};"

    def create_type_stmt(self) -> str:
        "Creates a user-defined table type with the columns of this table."

        definition = ",\n".join(str(c) for c in self.own_columns)
        return f"CREATE TYPE {LocalId(self.name)} AS TABLE (\n{definition}\n);"

    def drop_type_if_exists_stmt(self) -> str:
        return (
            f"IF EXISTS (SELECT * FROM sys.types WHERE is_user_defined = 1 AND name = {quote(self.name)}) "
            f"DROP TYPE {LocalId(self.name)};"
        )


class ParameterDirection(enum.IntEnum):
    "Direction of a stored procedure parameter. Parameter lists are ordered by direction."

    INPUT = 0
    INPUT_OUTPUT = 1
    OUTPUT = 2
    RETURN_VALUE = 3


class ParameterIncludes(enum.Flag):
    "Selects which columns of a table become stored procedure parameters."

    NONE = 0
    IDENTITY = 1
    OTHER = 2
    IDENTITY_AND_OTHER = 3


@dataclass
class ParameterOptions:
    """
    Determines how columns map to stored procedure parameters.

    :param includes: Which columns to include.
    :param use_identity_as_output: Make the identity column an output parameter if the database generates its values.
        Other identity columns remain input parameters.
    :param use_identity_as_filter: Use the identity column in the WHERE clause.
    :param allow_nulls: Make all parameters nullable.
    """

    includes: ParameterIncludes = ParameterIncludes.IDENTITY_AND_OTHER
    use_identity_as_output: bool = False
    use_identity_as_filter: bool = False
    allow_nulls: bool = False


@dataclass(eq=False)
class MSSQLParameter:
    """
    A stored procedure parameter.

    :param name: Parameter name without the `@` prefix.
    :param index: Ordinal position in the parameter list.
    :param sql_type_name: SQL type name, or name of a user-defined table type for table-valued parameters.
    :param direction: Input, output or return value.
    :param table_name: The table that holds the column the parameter corresponds to.
    :param column_name: The column the parameter corresponds to.
    :param object_type_name: Name of the model type of the corresponding property.
    :param object_property: The model property the parameter corresponds to.
    :param is_identity: True if the parameter carries the identity of a row.
    :param is_filter: True if the parameter is used in a WHERE clause.
    :param is_nullable: True if the parameter defaults to NULL.
    :param is_read_only: True for table-valued parameters.
    :param is_table_valued: True if the parameter type is a user-defined table type.
    :param is_multivalued: True if the parameter carries a set of values.
    :param table_type: The user-defined table type of a table-valued parameter.
    """

    name: str
    index: int
    sql_type_name: str
    direction: ParameterDirection = ParameterDirection.INPUT
    table_name: Optional[str] = None
    column_name: Optional[str] = None
    object_type_name: Optional[str] = None
    object_property: Optional[Property] = field(default=None, repr=False)
    length: Optional[str] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_identity: bool = False
    is_filter: bool = False
    is_nullable: bool = False
    is_read_only: bool = False
    is_table_valued: bool = False
    is_multivalued: bool = False
    table_type: Optional[MSSQLTable] = field(default=None, repr=False)

    @property
    def id(self) -> ParameterId:
        return ParameterId(self.name)

    @property
    def type_spec(self) -> str:
        if self.is_table_valued:
            return str(LocalId(self.sql_type_name))
        if self.length:
            return f"{self.sql_type_name}({self.length})"
        if self.precision or self.scale:
            spec = ",".join(str(v) for v in (self.precision, self.scale) if v)
            return f"{self.sql_type_name}({spec})"
        return self.sql_type_name

    def __str__(self) -> str:
        nullable = " = NULL" if self.is_nullable else ""
        output = (
            " OUTPUT"
            if self.direction
            in (ParameterDirection.INPUT_OUTPUT, ParameterDirection.OUTPUT)
            else ""
        )
        read_only = " READONLY" if self.is_read_only else ""
        return f"{self.id} {self.type_spec}{nullable}{output}{read_only}"


@enum.unique
class QueryType(enum.Enum):
    "The operation a stored procedure performs."

    INSERT = "insert"
    UPDATE = "update"
    UPDATE_RELATIONSHIP = "updateRelationship"
    DELETE = "delete"
    SELECT_SINGLE = "selectSingle"


@dataclass
class ResultSetColumn:
    """
    A column in the result set of a query.

    :param ordinal: Position of the column in the result set.
    :param name: Column name in the result set, an alias for joined columns.
    :param source_table: The table or table alias the column is selected from.
    :param source_column: The column name in the source table.
    :param parent_column: For joined columns, the foreign key column that realizes the join.
    :param is_joined: True if the column comes from a joined table.
    :param is_foreign_key: True if the column is a foreign key.
    :param is_nullable: True if the column can take the value NULL.
    :param sql_type_name: SQL type name of the column.
    :param model_type_name: Name of the model type of the corresponding property.
    """

    ordinal: int
    name: str
    source_table: str
    source_column: str
    parent_column: Optional[str]
    is_joined: bool
    is_foreign_key: bool
    is_nullable: bool
    sql_type_name: str
    model_type_name: Optional[str]

    @property
    def selection(self) -> str:
        selection = f"{LocalId(self.source_table)}.{LocalId(self.source_column)}"
        if self.name != self.source_column:
            selection += f" AS {LocalId(self.name)}"
        return selection


@dataclass
class ResultSet:
    columns: list[ResultSetColumn] = field(default_factory=list)


@dataclass(eq=False)
class MSSQLStoredProcedure:
    """
    A stored procedure that performs a single operation on a table.

    :param name: Name of the stored procedure.
    :param query_type: The operation the procedure performs.
    :param model_type: The model type of the related table.
    :param related_table: The table the procedure operates on.
    :param parameters: Parameters in direction order.
    :param result_sets: Shape of the rows the procedure returns.
    :param dependent_column: For relationship updates, the foreign key column the procedure sets.
    """

    name: str
    query_type: QueryType
    model_type: Type
    related_table: MSSQLTable
    parameters: list[MSSQLParameter] = field(default_factory=list)
    result_sets: list[ResultSet] = field(default_factory=list)
    dependent_column: Optional[Column] = field(default=None, repr=False)

    def create_stmt(self) -> str:
        lines: list[str] = [f"CREATE PROCEDURE {LocalId(self.name)}"]
        if self.parameters:
            params = ",\n".join(str(p) for p in self.parameters)
            lines[0] += f" (\n{params}\n)"
        lines.append("AS")
        lines.append("BEGIN")
        lines.append("SET NOCOUNT ON;")
        lines.extend(self.body())
        lines.append("END;")
        return "\n".join(lines)

    def drop_if_exists_stmt(self) -> str:
        return f"IF OBJECT_ID({quote(self.name)}, 'P') IS NOT NULL DROP PROCEDURE {LocalId(self.name)};"

    def body(self) -> list[str]:
        if self.query_type is QueryType.INSERT:
            return self._insert_body()
        elif self.query_type is QueryType.UPDATE:
            return self._update_body()
        elif self.query_type is QueryType.DELETE:
            return self._delete_body()
        elif self.query_type is QueryType.SELECT_SINGLE:
            return self._select_body()
        elif self.query_type is QueryType.UPDATE_RELATIONSHIP:
            return self._update_relationship_body()
        else:
            raise NotImplementedError(f"unsupported query type: {self.query_type}")

    def _input_parameters(self) -> list[MSSQLParameter]:
        return [
            p
            for p in self.parameters
            if p.direction
            not in (ParameterDirection.OUTPUT, ParameterDirection.RETURN_VALUE)
        ]

    def _where(self, filters: list[MSSQLParameter]) -> Optional[str]:
        conditions: list[str] = []
        for param in filters:
            table = param.table_name or self.related_table.name
            column = f"{LocalId(table)}.{LocalId(param.column_name or param.name)}"
            if param.is_nullable:
                conditions.append(f"{column} = ISNULL({param.id}, {column})")
            else:
                conditions.append(f"{column} = {param.id}")

        if not conditions:
            return None
        return "WHERE " + " AND ".join(conditions)

    def _insert_body(self) -> list[str]:
        table = LocalId(self.related_table.name)
        params = [p for p in self._input_parameters() if p.column_name]

        lines: list[str] = []
        if params:
            columns = ", ".join(str(LocalId(p.column_name or p.name)) for p in params)
            values = ", ".join(str(p.id) for p in params)
            lines.append(f"INSERT INTO {table} ({columns})")
            lines.append(f"VALUES ({values});")
        else:
            lines.append(f"INSERT INTO {table} DEFAULT VALUES;")

        for param in self.parameters:
            if param.is_identity and param.direction is ParameterDirection.OUTPUT:
                lines.append(f"SET {param.id} = SCOPE_IDENTITY();")
        return lines

    def _update_body(self) -> list[str]:
        table = LocalId(self.related_table.name)
        params = self._input_parameters()
        setters = [p for p in params if not p.is_filter and p.column_name]
        filters = [p for p in params if p.is_filter]

        if not setters:
            return []

        lines: list[str] = [f"UPDATE {table} SET"]
        lines.append(
            ",\n".join(f"{LocalId(p.column_name or p.name)} = {p.id}" for p in setters)
        )
        where = self._where(filters)
        if where is not None:
            lines.append(where)
        lines[-1] += ";"
        return lines

    def _delete_body(self) -> list[str]:
        filters = [p for p in self._input_parameters() if p.is_filter]
        lines = [f"DELETE FROM {LocalId(self.related_table.name)}"]
        where = self._where(filters)
        if where is not None:
            lines.append(where)
        lines[-1] += ";"
        return lines

    def _select_body(self) -> list[str]:
        if not self.result_sets:
            LOGGER.warning(
                "skipping body of stored procedure %s: there are no result sets",
                LocalId(self.name),
            )
            return []

        table = self.related_table
        result_set = self.result_sets[0]
        lines: list[str] = ["SELECT"]
        lines.append(",\n".join(c.selection for c in result_set.columns))
        lines.append(f"FROM {LocalId(table.name)}")

        identity = table.get_identity_column()
        if identity is not None:
            for column in table.dependent_columns:
                if not column.is_many:
                    continue
                alias = column.role or column.table.name
                join_table = str(LocalId(column.table.name))
                if column.role:
                    join_table += f" AS {LocalId(column.role)}"
                lines.append(
                    f"LEFT JOIN {join_table} ON {LocalId(alias)}.{LocalId(column.name)} = {LocalId(table.name)}.{LocalId(identity.name)}"
                )

        filters = [p for p in self.parameters if p.is_filter]
        where = self._where(filters)
        if where is not None:
            lines.append(where)
        lines[-1] += ";"
        return lines

    def _update_relationship_body(self) -> list[str]:
        column = self.dependent_column
        if column is None:
            raise ValueError(
                f"relationship update {LocalId(self.name)} has no dependent column"
            )

        dependent_table = column.table
        dependent_identity = dependent_table.get_identity_column()
        id_param = next((p for p in self.parameters if p.is_identity), None)
        values_param = next((p for p in self.parameters if p.is_table_valued), None)

        if dependent_identity is None or id_param is None or values_param is None:
            LOGGER.error(
                "cannot write query to update %s.%s: identity column or parameters are unknown",
                LocalId(dependent_table.name),
                LocalId(column.name),
            )
            return []
        if values_param.table_type is None or not values_param.table_type.own_columns:
            LOGGER.error(
                "cannot write query to update %s.%s: parameter %s has no valid table type",
                LocalId(dependent_table.name),
                LocalId(column.name),
                values_param.id,
            )
            return []

        table = LocalId(dependent_table.name)
        fk = LocalId(column.name)
        pk = LocalId(dependent_identity.name)
        value = LocalId(values_param.table_type.own_columns[0].name)
        values = f"(SELECT {value} FROM {values_param.id})"

        # rows absent from the set are detached, rows in the set are (re)attached
        return [
            f"DELETE {table} WHERE {fk} = {id_param.id} AND {pk} NOT IN {values};",
            f"UPDATE {table} SET {fk} = {id_param.id} WHERE {pk} IN {values};",
        ]


@dataclass(eq=False)
class MSSQLDatabase(Database):
    """
    A relational schema enriched with Microsoft SQL Server artifacts.

    :param table_types: User-defined table types.
    :param stored_procedures: Stored procedures that operate on tables.
    """

    table_types: list[MSSQLTable] = field(default_factory=list)
    stored_procedures: list[MSSQLStoredProcedure] = field(default_factory=list)

    def get_table_type(self, name: str) -> MSSQLTable:
        for table_type in self.table_types:
            if table_type.name == name:
                return table_type

        raise KeyError(f"table type not found: {name}")

    def get_stored_procedure(self, name: str) -> MSSQLStoredProcedure:
        for procedure in self.stored_procedures:
            if procedure.name == name:
                return procedure

        raise KeyError(f"stored procedure not found: {name}")


class MSSQLObjectFactory(ObjectFactory):
    @property
    def column_class(self) -> type[Column]:
        return MSSQLColumn

    @property
    def table_class(self) -> type[Table]:
        return MSSQLTable

    @property
    def database_class(self) -> type[Database]:
        return MSSQLDatabase
