import logging
from typing import Callable, Optional

from pysqlderive.formation.object_types import Column
from pysqlderive.model.elements import Type
from pysqlderive.model.id_types import LocalId

from .object_types import (
    MSSQLColumn,
    MSSQLParameter,
    MSSQLStoredProcedure,
    MSSQLTable,
    ParameterDirection,
    ParameterIncludes,
    ParameterOptions,
    QueryType,
    ResultSet,
    ResultSetColumn,
)
from .providers import MSSQLObjectNameProvider

LOGGER = logging.getLogger("pysqlderive")

ColumnFilter = Callable[[Column], bool]
TableTypeProvider = Callable[[Column], MSSQLTable]


class ResultSetBuilder:
    "Shapes the flattened result set of a query that selects a single row with its one-to-many relationships."

    object_name_provider: MSSQLObjectNameProvider

    def __init__(self, object_name_provider: MSSQLObjectNameProvider) -> None:
        self.object_name_provider = object_name_provider

    def _build_column(
        self,
        table_name: str,
        column: Column,
        parent_column: Optional[Column],
        ordinal: int,
    ) -> ResultSetColumn:
        is_joined = parent_column is not None
        prop = column.source_property
        return ResultSetColumn(
            ordinal=ordinal,
            name=(
                self.object_name_provider.get_column_alias(table_name, column.name)
                if is_joined
                else column.name
            ),
            source_table=table_name,
            source_column=column.name,
            parent_column=parent_column.name if parent_column is not None else None,
            is_joined=is_joined,
            is_foreign_key=column.is_foreign_key,
            is_nullable=column.is_nullable,
            sql_type_name=column.sql_type_name,
            model_type_name=prop.get_type_name() if prop is not None else None,
        )

    def build(
        self, table: MSSQLTable, column_filter: Optional[ColumnFilter] = None
    ) -> ResultSet:
        """
        Builds the result set of a table.

        Navigable own columns are selected directly. For each foreign key column that realizes a one-to-many
        relationship, the columns of the referencing table are selected with an alias that combines the role (or the
        table name) and the column name.
        """

        columns: list[ResultSetColumn] = []

        for column in table.own_columns:
            if column_filter is not None and not column_filter(column):
                continue
            if not column.is_navigable:
                continue
            columns.append(self._build_column(table.name, column, None, len(columns)))

        for dependent_column in table.dependent_columns:
            if not dependent_column.is_many:
                continue

            dependent_table = dependent_column.table
            table_name_or_alias = dependent_column.role or dependent_table.name
            for column in dependent_table.own_columns:
                if column_filter is not None and not column_filter(column):
                    continue
                if column is dependent_column:
                    continue
                columns.append(
                    self._build_column(
                        table_name_or_alias, column, dependent_column, len(columns)
                    )
                )

        return ResultSet(columns)


class StoredProcedureBuilder:
    """
    Derives stored procedures with their parameters and result sets.

    Procedure names are unique: when two derived procedures receive the same name, the first one is kept.

    :param identity_table_type: Table type of identity lists passed to relationship update procedures.
    :param table_type_provider: Returns a table type for lists of identities whose SQL type differs from that of
        the identity table type.
    """

    object_name_provider: MSSQLObjectNameProvider
    identity_table_type: MSSQLTable
    table_type_provider: Optional[TableTypeProvider]
    logger: logging.Logger

    def __init__(
        self,
        object_name_provider: MSSQLObjectNameProvider,
        identity_table_type: MSSQLTable,
        logger: Optional[logging.Logger] = None,
        table_type_provider: Optional[TableTypeProvider] = None,
    ) -> None:
        self.object_name_provider = object_name_provider
        self.identity_table_type = identity_table_type
        self.table_type_provider = table_type_provider
        self.logger = logger or LOGGER
        self._result: dict[str, MSSQLStoredProcedure] = {}

    def get_result(self) -> list[MSSQLStoredProcedure]:
        "Stored procedures in the order they were derived."

        return list(self._result.values())

    def _add(self, procedure: MSSQLStoredProcedure) -> bool:
        if procedure.name in self._result:
            self.logger.warning(
                "not adding stored procedure %s: a procedure with the same name already exists",
                LocalId(procedure.name),
            )
            return False

        self._result[procedure.name] = procedure
        return True

    def _create(
        self,
        query_type: QueryType,
        table: MSSQLTable,
        typ: Type,
        parameters: list[MSSQLParameter],
        dependent_column: Optional[Column] = None,
    ) -> MSSQLStoredProcedure:
        name = self.object_name_provider.get_stored_procedure_name(
            query_type, typ, dependent_column
        )
        return MSSQLStoredProcedure(
            name=name,
            query_type=query_type,
            model_type=typ,
            related_table=table,
            parameters=parameters,
            dependent_column=dependent_column,
        )

    def _has_identity(self, table: MSSQLTable, query_type: QueryType) -> bool:
        if table.get_identity_column() is None:
            self.logger.error(
                "cannot build %s procedure for table %s: the table has no identity column",
                query_type.value,
                LocalId(table.name),
            )
            return False
        return True

    def build_insert(self, table: MSSQLTable, typ: Type) -> None:
        "Inserts a row and returns its identity, followed by procedures that set one-to-many relationships."

        options = ParameterOptions(
            includes=ParameterIncludes.IDENTITY_AND_OTHER, use_identity_as_output=True
        )
        procedure = self._create(
            QueryType.INSERT, table, typ, self.build_parameters(table, options)
        )
        if self._add(procedure):
            self.build_sub_procedures(procedure)

    def build_update_by_id(self, table: MSSQLTable, typ: Type) -> None:
        "Updates a row identified by its identity, followed by procedures that set one-to-many relationships."

        if not self._has_identity(table, QueryType.UPDATE):
            return

        options = ParameterOptions(
            includes=ParameterIncludes.IDENTITY_AND_OTHER, use_identity_as_filter=True
        )
        procedure = self._create(
            QueryType.UPDATE, table, typ, self.build_parameters(table, options)
        )
        if self._add(procedure):
            self.build_sub_procedures(procedure)

    def build_delete_by_id(self, table: MSSQLTable, typ: Type) -> None:
        if not self._has_identity(table, QueryType.DELETE):
            return

        options = ParameterOptions(
            includes=ParameterIncludes.IDENTITY, use_identity_as_filter=True
        )
        procedure = self._create(
            QueryType.DELETE, table, typ, self.build_parameters(table, options)
        )
        self._add(procedure)

    def build_select_by_id(self, table: MSSQLTable, typ: Type) -> None:
        if not self._has_identity(table, QueryType.SELECT_SINGLE):
            return

        options = ParameterOptions(
            includes=ParameterIncludes.IDENTITY, use_identity_as_filter=True
        )
        procedure = self._create(
            QueryType.SELECT_SINGLE, table, typ, self.build_parameters(table, options)
        )
        procedure.result_sets.append(
            ResultSetBuilder(self.object_name_provider).build(table)
        )
        self._add(procedure)

    def build_sub_procedures(self, procedure: MSSQLStoredProcedure) -> None:
        "Derives a relationship update procedure for each one-to-many relationship of the related table."

        table = procedure.related_table
        for column in table.dependent_columns:
            if column.is_many:
                self.build_update_relationship(table, procedure.model_type, column)

    def build_update_relationship(
        self, table: MSSQLTable, typ: Type, dependent_column: Column
    ) -> None:
        """
        Derives a procedure that replaces the set of rows that reference a principal row.

        Parameters are the identity of the principal row and a read-only table-valued parameter with the identities
        of the referencing rows.
        """

        id_parameter = self.build_id_parameter(table, 0)
        if id_parameter is None:
            self.logger.error(
                "cannot build procedure to update %s.%s: the identity column of table %s is unknown",
                LocalId(dependent_column.table.name),
                LocalId(dependent_column.name),
                LocalId(table.name),
            )
            return

        dependent_identity = dependent_column.table.get_identity_column()
        if dependent_identity is None:
            self.logger.error(
                "cannot build procedure to update %s.%s: the table has no identity column",
                LocalId(dependent_column.table.name),
                LocalId(dependent_column.name),
            )
            return

        procedure = self._create(
            QueryType.UPDATE_RELATIONSHIP,
            table,
            typ,
            [id_parameter, self.build_id_list_parameter(dependent_identity, 1)],
            dependent_column,
        )

        # insert and update procedures both request the same relationship update
        existing = self._result.get(procedure.name)
        if existing is not None and existing.dependent_column is dependent_column:
            return

        self._add(procedure)

    def build_id_parameter(
        self, table: MSSQLTable, index: int
    ) -> Optional[MSSQLParameter]:
        id_column = table.get_identity_column()
        if id_column is None or id_column.source_property is None:
            return None

        return MSSQLParameter(
            name=self.object_name_provider.get_parameter_name(id_column.name, False),
            index=index,
            sql_type_name=id_column.sql_type_name,
            direction=ParameterDirection.INPUT,
            table_name=table.name,
            column_name=id_column.name,
            object_type_name=id_column.source_property.get_type_name(),
            object_property=id_column.source_property,
            length=id_column.length,
            precision=id_column.precision,
            scale=id_column.scale,
            is_identity=True,
        )

    def get_id_list_table_type(self, related_column: Column) -> MSSQLTable:
        "Table type whose single column matches the SQL type of an identity column."

        columns = self.identity_table_type.own_columns
        if columns and columns[0].sql_type_name == related_column.sql_type_name:
            return self.identity_table_type

        if self.table_type_provider is not None:
            return self.table_type_provider(related_column)

        self.logger.warning(
            "table type %s does not match type %s of column %s.%s",
            LocalId(self.identity_table_type.name),
            related_column.sql_type_name,
            LocalId(related_column.table.name),
            LocalId(related_column.name),
        )
        return self.identity_table_type

    def build_id_list_parameter(
        self, related_column: Column, index: int
    ) -> MSSQLParameter:
        table_type = self.get_id_list_table_type(related_column)
        return MSSQLParameter(
            name=self.object_name_provider.get_parameter_name(related_column.name, True),
            index=index,
            sql_type_name=table_type.name,
            direction=ParameterDirection.INPUT,
            column_name=related_column.name,
            object_type_name=(
                table_type.source_type.name
                if table_type.source_type is not None
                else None
            ),
            is_read_only=True,
            is_table_valued=True,
            is_multivalued=True,
            table_type=table_type,
        )

    def build_parameters(
        self,
        table: MSSQLTable,
        options: ParameterOptions,
        column_filter: Optional[ColumnFilter] = None,
    ) -> list[MSSQLParameter]:
        "Maps own columns of a table to parameters, ordered by direction."

        parameters: list[MSSQLParameter] = []

        for column in filter_columns(table.own_columns, options.includes, column_filter):
            if column.is_many:
                self.logger.debug(
                    "no parameter for column %s.%s: the column is the foreign key of a one-to-many relationship",
                    LocalId(table.name),
                    LocalId(column.name),
                )
                continue

            prop = column.source_property
            if prop is None or prop.type is None:
                self.logger.warning(
                    "no parameter for column %s.%s: the property type is unknown",
                    LocalId(table.name),
                    LocalId(column.name),
                )
                continue

            is_output = (
                options.use_identity_as_output
                and isinstance(column, MSSQLColumn)
                and column.is_auto_increment
            )
            is_filter = column.is_identity and options.use_identity_as_filter

            parameters.append(
                MSSQLParameter(
                    name=self.object_name_provider.get_parameter_name(column.name, False),
                    index=len(parameters),
                    sql_type_name=column.sql_type_name,
                    direction=(
                        ParameterDirection.OUTPUT
                        if is_output
                        else ParameterDirection.INPUT
                    ),
                    table_name=table.name,
                    column_name=column.name,
                    object_type_name=prop.type.name,
                    object_property=prop,
                    length=column.length,
                    precision=column.precision,
                    scale=column.scale,
                    is_identity=column.is_identity,
                    is_filter=is_filter,
                    is_nullable=(options.allow_nulls or column.is_nullable)
                    and not column.is_identity,
                )
            )

        return sort_parameters(parameters)


def filter_columns(
    columns: list[Column],
    includes: ParameterIncludes,
    column_filter: Optional[ColumnFilter] = None,
) -> list[Column]:
    "Selects identity and/or other columns, after applying a custom filter."

    include_identity = bool(includes & ParameterIncludes.IDENTITY)
    include_other = bool(includes & ParameterIncludes.OTHER)

    selected: list[Column] = []
    for column in columns:
        if column_filter is not None and not column_filter(column):
            continue
        if column.is_identity:
            if include_identity:
                selected.append(column)
        elif include_other:
            selected.append(column)
    return selected


def sort_parameters(parameters: list[MSSQLParameter]) -> list[MSSQLParameter]:
    "Stable sort by direction: input, input-output, output, return value."

    ordered = sorted(parameters, key=lambda p: p.direction)
    for index, parameter in enumerate(ordered):
        parameter.index = index
    return ordered
