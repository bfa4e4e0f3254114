import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..model.elements import Model, Property, Type
from ..providers import SqlColumnSpecProvider, SqlObjectNameProvider, SqlTypeNameProvider
from .associations import (
    AssociationEndResolver,
    AssociationMap,
    OppositeTypeEndResolver,
    build_association_map,
)
from .dependency import resolve_column_relationships, sort_tables
from .inspection import find_identity_property, get_identity_property
from .object_types import (
    Column,
    ColumnRelationship,
    Database,
    IdentityPropertyError,
    ObjectFactory,
    Table,
    TableDefinition,
    TableFormationError,
)

LOGGER = logging.getLogger("pysqlderive")

TableFilter = Callable[[Type], bool]


@dataclass
class DbOptions:
    """
    Options for deriving a relational schema from an object model.

    :param type_name_provider: Maps model types to SQL type names.
    :param object_name_provider: Derives table, column and parameter names.
    :param column_spec_provider: Determines column length, precision and scale, and which properties are relationships.
    :param association_end_resolver: Interprets the member ends of associations in the object model.
    :param factory: Instantiates tables, columns and the database.
    :param table_filters: Predicates that return false for types that should not become tables.
    """

    type_name_provider: SqlTypeNameProvider = field(default_factory=SqlTypeNameProvider)
    object_name_provider: SqlObjectNameProvider = field(
        default_factory=SqlObjectNameProvider
    )
    column_spec_provider: SqlColumnSpecProvider = field(
        default_factory=SqlColumnSpecProvider
    )
    association_end_resolver: AssociationEndResolver = field(
        default_factory=OppositeTypeEndResolver
    )
    factory: ObjectFactory = field(default_factory=ObjectFactory)
    table_filters: list[TableFilter] = field(default_factory=list)


class DbBuilder:
    """
    Derives a relational schema from an object model.

    The derivation runs in stages: association analysis, table synthesis per type, resolution of foreign key columns
    against principal tables, and a dependency sort of tables. Each call to `build` runs all stages from scratch.
    """

    options: DbOptions
    logger: logging.Logger
    table_filters: list[TableFilter]

    def __init__(
        self,
        options: Optional[DbOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.options = options if options is not None else DbOptions()
        self.logger = logger or LOGGER
        self.table_filters = list(self.options.table_filters)

    @property
    def type_name_provider(self) -> SqlTypeNameProvider:
        return self.options.type_name_provider

    @property
    def object_name_provider(self) -> SqlObjectNameProvider:
        return self.options.object_name_provider

    @property
    def column_spec_provider(self) -> SqlColumnSpecProvider:
        return self.options.column_spec_provider

    @property
    def factory(self) -> ObjectFactory:
        return self.options.factory

    def add_table_filter(self, predicate: TableFilter) -> "DbBuilder":
        """
        Adds a predicate that returns false for types that should not become tables.

        A type becomes a table only if it passes all filters.
        """

        self.table_filters.append(predicate)
        return self

    def should_create_table(self, typ: Type) -> bool:
        return all(predicate(typ) for predicate in self.table_filters)

    def get_association_map(self, model: Model) -> AssociationMap:
        return build_association_map(
            model, self.column_spec_provider, self.options.association_end_resolver
        )

    def build(self, model: Model) -> Database:
        "Derives the relational schema of an object model."

        return self.build_database(model, self.get_association_map(model))

    def build_database(
        self, model: Model, association_map: AssociationMap
    ) -> Database:
        tables: list[Table] = []
        relationships: list[ColumnRelationship] = []

        for typ in model.get_all_types():
            if not typ.is_membered_classifier() or typ.is_data_type():
                self.logger.debug("no table for value type %r", typ.name)
                continue
            if not self.should_create_table(typ):
                continue

            definition = self.build_table_definition(typ, association_map)
            if definition is None:
                continue

            self.logger.debug(
                "created table %s from type %r", definition.table, typ.name
            )
            tables.append(definition.table)
            relationships.extend(definition.relationships)

        resolve_column_relationships(tables, relationships, self.logger)
        return self.factory.database_class(tables=sort_tables(tables))

    def build_table_definition(
        self, typ: Type, association_map: AssociationMap
    ) -> Optional[TableDefinition]:
        """
        Builds a table from a single type.

        Own columns come first in attribute declaration order, followed by foreign key columns that realize
        one-to-many relationships declared on other types, in discovery order.
        """

        if not typ.name:
            self.logger.warning(
                "cannot build a table definition from type %r because the type has no name",
                typ.id,
            )
            return None

        table_name = self.object_name_provider.get_table_name(typ)
        table = self.factory.table_class(name=table_name, source_type=typ)
        definition = TableDefinition(table)

        if typ.is_membered_classifier():
            self._add_attribute_columns(definition, typ)

        self._add_relationship_columns(definition, typ, association_map)
        return definition

    def _add_attribute_columns(self, definition: TableDefinition, typ: Type) -> None:
        table = definition.table
        identity: Optional[Column] = None

        for prop in typ.owned_attributes:
            is_foreign_key = (
                prop.owner is typ and self.column_spec_provider.is_relationship(prop)
            )
            if is_foreign_key and prop.is_multivalued():
                # column goes on the other table (one-to-many) or a junction table (many-to-many)
                continue

            column = self.build_column_from_property(table, typ, prop, is_foreign_key)
            if column is None:
                continue

            if column.is_identity:
                if identity is not None:
                    self.logger.warning(
                        "property %r of type %r is not used as identity: column %r already is",
                        prop.name,
                        typ.name,
                        identity.name,
                    )
                    column.is_identity = False
                else:
                    identity = column

            table.own_columns.append(column)
            if is_foreign_key:
                assert prop.type is not None
                definition.relationships.append(ColumnRelationship(column, prop.type))

    def _add_relationship_columns(
        self, definition: TableDefinition, typ: Type, association_map: AssociationMap
    ) -> None:
        table = definition.table

        for info in association_map.get(typ.id, []):
            # the type owns a navigable attribute, the column already exists
            if info.from_property_is_owned_by_type:
                continue
            if not info.is_one_to_many:
                continue

            id_property = find_identity_property(info.from_type)
            if id_property is None:
                raise IdentityPropertyError(
                    f"cannot create foreign key column on table {table}; identity property of principal type is unknown",
                    info.from_type,
                )

            id_column_name = self.object_name_provider.get_column_name(id_property)
            role = self.object_name_provider.get_column_name(info.from_property)
            column_name = f"{id_column_name}_{role}" if role else id_column_name

            self.logger.debug(
                "adding column %s.%s for one-to-many relationship %s.%s without navigable attribute on %s",
                typ.name,
                column_name,
                info.from_type.name,
                info.from_property.name,
                typ.name,
            )

            column = self.build_column(
                table,
                role=role or None,
                source_property=info.from_property,
                primary_key_property=id_property,
                name=column_name,
                is_foreign_key=True,
                is_navigable=False,
            )
            column.is_many = True
            table.own_columns.append(column)
            definition.relationships.append(ColumnRelationship(column, info.from_type))

    def build_column_from_property(
        self, table: Table, typ: Type, prop: Property, is_foreign_key: bool
    ) -> Optional[Column]:
        if not prop.name:
            self.logger.warning(
                "cannot create a column from property %r of type %r on table %s because the property has no name",
                prop.id,
                typ.name,
                table,
            )
            return None

        if is_foreign_key:
            assert prop.type is not None
            name = self.object_name_provider.get_foreign_key_column_name(prop)
            primary_key_property: Optional[Property] = get_identity_property(
                prop.type
            )
        else:
            name = self.object_name_provider.get_column_name(prop)
            primary_key_property = None

        return self.build_column(
            table,
            role=None,
            source_property=prop,
            primary_key_property=primary_key_property,
            name=name,
            is_foreign_key=is_foreign_key,
            is_navigable=True,
        )

    def build_column(
        self,
        table: Table,
        *,
        role: Optional[str],
        source_property: Property,
        primary_key_property: Optional[Property],
        name: str,
        is_foreign_key: bool,
        is_navigable: bool,
    ) -> Column:
        # the type of a foreign key column matches the primary key it references
        type_property = (
            primary_key_property
            if is_foreign_key and primary_key_property is not None
            else source_property
        )
        sql_type_name = self.get_sql_type_name(table, type_property)

        return self.factory.column_class(
            name=name,
            sql_type_name=sql_type_name,
            table=table,
            length=self.column_spec_provider.get_length(sql_type_name, type_property),
            precision=self.column_spec_provider.get_precision(
                sql_type_name, type_property
            ),
            scale=self.column_spec_provider.get_scale(sql_type_name, type_property),
            is_identity=not is_foreign_key and source_property.is_id,
            is_required=not source_property.is_optional() or source_property.is_id,
            is_foreign_key=is_foreign_key,
            source_property=source_property,
            primary_key_property=primary_key_property,
            role=role,
            is_navigable=is_navigable,
        )

    def get_sql_type_name(self, table: Table, prop: Property) -> str:
        "Uses the type name provider to get the SQL type name of a property."

        sql_type_name = self.type_name_provider.get_type_name(prop)
        if not sql_type_name:
            raise TableFormationError(
                f"unable to determine SQL type of property {prop.name!r}", table.name
            )
        return sql_type_name

    def get_identity_column_name(self, typ: Type) -> str:
        return self.object_name_provider.get_column_name(get_identity_property(typ))
