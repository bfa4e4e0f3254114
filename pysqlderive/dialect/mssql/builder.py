import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from pysqlderive.formation.associations import AssociationMap
from pysqlderive.formation.builder import DbBuilder, DbOptions
from pysqlderive.formation.object_types import (
    Column,
    MappingError,
    ObjectFactory,
)
from pysqlderive.model.elements import Model, PrimitiveTypes, Type
from pysqlderive.model.id_types import LocalId
from pysqlderive.providers import (
    SqlColumnSpecProvider,
    SqlObjectNameProvider,
    SqlTypeNameProvider,
)
from pysqlderive.util.typing import override

from .object_types import (
    MSSQLDatabase,
    MSSQLKey,
    MSSQLKeyType,
    MSSQLObjectFactory,
    MSSQLTable,
)
from .procedures import StoredProcedureBuilder
from .providers import (
    MSSQLColumnSpecProvider,
    MSSQLObjectNameProvider,
    MSSQLTypeNameProvider,
)

TableTypeSelector = Callable[[Type], bool]
ProcedureSelector = Callable[[Type, MSSQLTable], bool]


@enum.unique
class ProcedureKind(enum.Enum):
    "Kind of stored procedure derived for a table."

    INSERT = "Insert"
    UPDATE_BY_ID = "UpdateById"
    SELECT_BY_ID = "SelectById"
    DELETE_BY_ID = "DeleteById"


@dataclass
class MSSQLDbOptions(DbOptions):
    """
    Options for deriving a Microsoft SQL Server schema from an object model.

    :param identity_type: The model type of identities, used for the table type that passes a list of identities.
    :param table_type_selectors: Predicates that select types for user-defined table type generation.
    :param procedures: Stored procedure kinds to derive, each with predicates that select tables. An empty list of
        predicates selects all tables.
    """

    type_name_provider: SqlTypeNameProvider = field(
        default_factory=MSSQLTypeNameProvider
    )
    object_name_provider: SqlObjectNameProvider = field(
        default_factory=MSSQLObjectNameProvider
    )
    column_spec_provider: SqlColumnSpecProvider = field(
        default_factory=MSSQLColumnSpecProvider
    )
    factory: ObjectFactory = field(default_factory=MSSQLObjectFactory)
    identity_type: Type = field(default_factory=lambda: PrimitiveTypes.integer)
    table_type_selectors: list[TableTypeSelector] = field(default_factory=list)
    procedures: dict[ProcedureKind, list[ProcedureSelector]] = field(
        default_factory=dict
    )


class MSSQLDbBuilder(DbBuilder):
    """
    Derives a Microsoft SQL Server schema from an object model.

    In addition to tables, the builder derives primary and foreign key constraints, user-defined table types and
    stored procedures.
    """

    options: MSSQLDbOptions
    table_type_selectors: list[TableTypeSelector]
    procedure_selectors: dict[ProcedureKind, list[ProcedureSelector]]

    def __init__(
        self,
        options: Optional[MSSQLDbOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(options if options is not None else MSSQLDbOptions(), logger)

        if not isinstance(self.options.object_name_provider, MSSQLObjectNameProvider):
            raise TypeError("expected an object name provider for Microsoft SQL Server")
        if not isinstance(self.options.column_spec_provider, MSSQLColumnSpecProvider):
            raise TypeError("expected a column spec provider for Microsoft SQL Server")
        if not isinstance(self.options.factory, MSSQLObjectFactory):
            raise TypeError("expected an object factory for Microsoft SQL Server")

        self.table_type_selectors = list(self.options.table_type_selectors)
        self.procedure_selectors = {
            kind: list(selectors) for kind, selectors in self.options.procedures.items()
        }

    @property
    def mssql_object_name_provider(self) -> MSSQLObjectNameProvider:
        provider = self.options.object_name_provider
        assert isinstance(provider, MSSQLObjectNameProvider)
        return provider

    @property
    def mssql_column_spec_provider(self) -> MSSQLColumnSpecProvider:
        provider = self.options.column_spec_provider
        assert isinstance(provider, MSSQLColumnSpecProvider)
        return provider

    @override
    def add_table_filter(self, predicate: Callable[[Type], bool]) -> "MSSQLDbBuilder":
        super().add_table_filter(predicate)
        return self

    def add_table_types(self, selector: TableTypeSelector) -> "MSSQLDbBuilder":
        """
        Adds a predicate that selects types for which to create a user-defined table type.

        A type gets a table type if any of the predicates selects it.
        """

        self.table_type_selectors.append(selector)
        return self

    def _add_procedures(
        self, kind: ProcedureKind, selector: Optional[ProcedureSelector]
    ) -> "MSSQLDbBuilder":
        selectors = self.procedure_selectors.setdefault(kind, [])
        if selector is not None:
            selectors.append(selector)
        else:
            # an unfiltered call overrides previous selections
            selectors.clear()
        return self

    def add_procedures_for_insert(
        self, selector: Optional[ProcedureSelector] = None
    ) -> "MSSQLDbBuilder":
        """
        Derives an insert procedure for each table.

        :param selector: Selects tables to derive the procedure for. Calling this method multiple times with different
            selectors expands the selection. Omit to derive the procedure for all tables.
        """

        return self._add_procedures(ProcedureKind.INSERT, selector)

    def add_procedures_for_update_by_id(
        self, selector: Optional[ProcedureSelector] = None
    ) -> "MSSQLDbBuilder":
        "Derives an update procedure for each table. See `add_procedures_for_insert` on selectors."

        return self._add_procedures(ProcedureKind.UPDATE_BY_ID, selector)

    def add_procedures_for_select_by_id(
        self, selector: Optional[ProcedureSelector] = None
    ) -> "MSSQLDbBuilder":
        "Derives a select procedure for each table. See `add_procedures_for_insert` on selectors."

        return self._add_procedures(ProcedureKind.SELECT_BY_ID, selector)

    def add_procedures_for_delete_by_id(
        self, selector: Optional[ProcedureSelector] = None
    ) -> "MSSQLDbBuilder":
        "Derives a delete procedure for each table. See `add_procedures_for_insert` on selectors."

        return self._add_procedures(ProcedureKind.DELETE_BY_ID, selector)

    @override
    def build(self, model: Model) -> MSSQLDatabase:
        association_map = self.get_association_map(model)
        database = self.build_database(model, association_map)
        if not isinstance(database, MSSQLDatabase):
            raise TypeError(
                f"expected: {MSSQLDatabase.__name__}; got: {type(database).__name__}"
            )

        self.create_keys(database)
        identity_table_type = self.create_table_types(model, database, association_map)
        self.build_procedures(database, identity_table_type)
        return database

    def create_keys(self, database: MSSQLDatabase) -> None:
        "Adds primary and foreign key constraints to tables."

        table_types = {
            table.source_type.id
            for table in database.tables
            if table.source_type is not None
        }

        for table in database.tables:
            if not isinstance(table, MSSQLTable):
                raise TypeError(f"expected: {MSSQLTable.__name__}")

            keys: list[MSSQLKey] = []
            for column in table.own_columns:
                if column.is_foreign_key:
                    key = self.create_foreign_key(column, table_types)
                    if key is not None:
                        keys.append(key)
                if column.is_identity and table.source_type is not None:
                    keys.append(self.create_primary_key(column, table.source_type))
            table.keys = keys

    def create_foreign_key(
        self, column: Column, table_types: set[str]
    ) -> Optional[MSSQLKey]:
        source_property = column.source_property
        primary_key_property = column.primary_key_property
        if source_property is None or primary_key_property is None:
            self.logger.warning(
                "no foreign key for column %s.%s: referenced identity is unknown",
                column.table,
                LocalId(column.name),
            )
            return None

        principal = primary_key_property.owner
        if not isinstance(principal, Type):
            raise MappingError(
                f"identity property {primary_key_property.name!r} is not owned by a type"
            )
        if principal.id not in table_types:
            self.logger.debug(
                "no foreign key for column %s.%s: type %r has no table",
                column.table,
                LocalId(column.name),
                principal.name,
            )
            return None

        return MSSQLKey(
            name=self.mssql_object_name_provider.get_foreign_key_name(
                source_property, primary_key_property
            ),
            key_type=MSSQLKeyType.FOREIGN,
            column_name=column.name,
            primary_key_table_name=self.object_name_provider.get_table_name(principal),
            primary_key_column_name=self.get_identity_column_name(principal),
            # TODO: cascade when the relationship is a composition, once the model carries aggregation kind
            cascade_on_delete=False,
        )

    def create_primary_key(self, column: Column, typ: Type) -> MSSQLKey:
        return MSSQLKey(
            name=self.mssql_object_name_provider.get_primary_key_name(typ),
            key_type=MSSQLKeyType.PRIMARY,
            column_name=column.name,
        )

    def should_create_table_type(self, typ: Type) -> bool:
        return any(selector(typ) for selector in self.table_type_selectors)

    def create_table_types(
        self,
        model: Model,
        database: MSSQLDatabase,
        association_map: AssociationMap,
    ) -> MSSQLTable:
        """
        Creates user-defined table types for selected types.

        A table type that holds a list of identities is always created, as relationship update procedures depend on
        it.

        :returns: The table type that holds a list of identities.
        """

        identity_type_name = self.type_name_provider.get_type_name(
            self.options.identity_type
        )
        if not identity_type_name:
            raise MappingError(
                f"cannot map identity type {self.options.identity_type.name!r} to a SQL type"
            )

        table_types: dict[str, MSSQLTable] = {}
        identity_table_type: Optional[MSSQLTable] = None

        for typ in model.get_all_types():
            if not self.should_create_table_type(typ):
                continue

            table_type: Optional[MSSQLTable]
            if self.mssql_column_spec_provider.requires_simple_table_type(typ):
                try:
                    sql_type_name = self.type_name_provider.get_type_name(typ)
                except MappingError as e:
                    self.logger.warning(
                        "cannot create simple table type for type %r: %s", typ.name, e
                    )
                    continue
                if not sql_type_name:
                    self.logger.warning(
                        "cannot create simple table type for type %r: could not map this type to a SQL type",
                        typ.name,
                    )
                    continue

                table_type = self.create_simple_table_type(typ, sql_type_name)
                if sql_type_name == identity_type_name and identity_table_type is None:
                    identity_table_type = table_type
            else:
                table_type = self.create_complex_table_type(typ, association_map)

            if table_type is None:
                continue
            if table_type.name in table_types:
                self.logger.debug(
                    "table type %s already exists, skipping type %r",
                    table_type,
                    typ.name,
                )
                if identity_table_type is table_type:
                    identity_table_type = table_types[table_type.name]
                continue

            table_types[table_type.name] = table_type

        if identity_table_type is None:
            identity_table_type = self.create_simple_table_type(
                self.options.identity_type, identity_type_name
            )
            identity_table_type = table_types.setdefault(
                identity_table_type.name, identity_table_type
            )

        database.table_types = list(table_types.values())
        return identity_table_type

    def create_simple_table_type(self, typ: Type, sql_type_name: str) -> MSSQLTable:
        "Creates a single-column table type whose column has the given SQL type."

        names = self.mssql_object_name_provider
        table = self.factory.table_class(
            name=names.get_simple_table_type_name(typ, sql_type_name), source_type=typ
        )
        if not isinstance(table, MSSQLTable):
            raise TypeError(f"expected: {MSSQLTable.__name__}")

        column = self.factory.column_class(
            name=names.get_simple_table_type_column_name(sql_type_name),
            sql_type_name=sql_type_name,
            table=table,
            length=self.column_spec_provider.get_length(sql_type_name),
            precision=self.column_spec_provider.get_precision(sql_type_name),
            scale=self.column_spec_provider.get_scale(sql_type_name),
            is_required=True,
        )
        table.own_columns.append(column)
        return table

    def create_complex_table_type(
        self, typ: Type, association_map: AssociationMap
    ) -> Optional[MSSQLTable]:
        "Creates a table type with a column for each attribute of the type."

        definition = self.build_table_definition(typ, association_map)
        if definition is None:
            return None

        table = definition.table
        if not isinstance(table, MSSQLTable):
            raise TypeError(f"expected: {MSSQLTable.__name__}")
        table.name = self.mssql_object_name_provider.get_complex_table_type_name(typ)
        return table

    def get_simple_table_type(
        self, database: MSSQLDatabase, column: Column
    ) -> MSSQLTable:
        "Finds or creates a single-column table type whose column has the SQL type of the given column."

        typ = (
            column.source_property.type
            if column.source_property is not None
            and column.source_property.type is not None
            else self.options.identity_type
        )
        table_type = self.create_simple_table_type(typ, column.sql_type_name)
        for existing in database.table_types:
            if existing.name == table_type.name:
                return existing

        self.logger.debug("adding table type %s", table_type)
        database.table_types.append(table_type)
        return table_type

    def should_create_procedure(
        self, typ: Type, table: MSSQLTable, selectors: list[ProcedureSelector]
    ) -> bool:
        if not selectors:
            return True
        return any(selector(typ, table) for selector in selectors)

    def build_procedures(
        self, database: MSSQLDatabase, identity_table_type: MSSQLTable
    ) -> None:
        builder = StoredProcedureBuilder(
            self.mssql_object_name_provider,
            identity_table_type,
            self.logger,
            lambda column: self.get_simple_table_type(database, column),
        )

        for table in database.tables:
            typ = table.source_type
            if typ is None:
                continue  # junction table
            if not isinstance(table, MSSQLTable):
                raise TypeError(f"expected: {MSSQLTable.__name__}")

            for kind, selectors in self.procedure_selectors.items():
                if not self.should_create_procedure(typ, table, selectors):
                    continue

                if kind is ProcedureKind.INSERT:
                    builder.build_insert(table, typ)
                elif kind is ProcedureKind.UPDATE_BY_ID:
                    builder.build_update_by_id(table, typ)
                elif kind is ProcedureKind.SELECT_BY_ID:
                    builder.build_select_by_id(table, typ)
                elif kind is ProcedureKind.DELETE_BY_ID:
                    builder.build_delete_by_id(table, typ)

        database.stored_procedures = builder.get_result()
