"""
Analysis of associations and relationship attributes in the object model.

The analysis produces, for each dependent type, a list of relationship descriptors that tell which type the
dependent type points to, with what cardinality, and whether the dependent type already owns a navigable attribute
for the relationship.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..model.elements import Association, Model, Property, Type
from ..providers import SqlColumnSpecProvider

LOGGER = logging.getLogger("pysqlderive")


@dataclass
class TypeAssociationInfo:
    """
    A directed relationship edge, keyed by the type whose table hosts a matching foreign key.

    :param from_type: The principal type that owns the referenced identity.
    :param from_property: The end pointing away from the principal type.
    :param to_type: The dependent type that holds the foreign key.
    :param to_property: The opposite end, or `None` if the edge was derived from a plain attribute.
    :param from_property_is_owned_by_type: True if the dependent type owns a navigable attribute for the
        relationship, in which case no extra column is synthesized.
    :param is_one_to_many: True if one instance of the principal type relates to many instances of the dependent type.
    """

    from_type: Type
    from_property: Property
    to_type: Type
    to_property: Optional[Property]
    from_property_is_owned_by_type: bool
    is_one_to_many: bool


AssociationMap = dict[str, list[TypeAssociationInfo]]
"Relationship descriptors keyed by the identifier of the dependent type."


@dataclass(frozen=True)
class AssociationEnd:
    """
    An end of a binary association, with the object model's typing convention resolved.

    :param property: The member end.
    :param host_type: The type the end belongs to, i.e. the type navigating along the end.
    :param target_type: The type the end points to.
    """

    property: Property
    host_type: Type
    target_type: Type


class AssociationEndResolver(abc.ABC):
    "Interprets the member ends of a binary association according to the conventions of the upstream model."

    def resolve(
        self, association: Association
    ) -> Optional[tuple[AssociationEnd, AssociationEnd]]:
        "Returns both ends of a binary association, or `None` if the association is not binary or incomplete."

        if len(association.member_ends) != 2:
            return None

        first, second = association.member_ends
        if first.type is None or second.type is None:
            LOGGER.warning(
                "skipping association %r because a member end has no type",
                association.name or association.id,
            )
            return None

        return self.resolve_ends(first, second)

    @abc.abstractmethod
    def resolve_ends(
        self, first: Property, second: Property
    ) -> tuple[AssociationEnd, AssociationEnd]: ...


class OppositeTypeEndResolver(AssociationEndResolver):
    """
    Resolves ends where the type of an end is the type on the opposite side.

    This is the UML convention: the end `employees: Employee[*]` belongs to `Department`, which is the type of the
    other end.
    """

    def resolve_ends(
        self, first: Property, second: Property
    ) -> tuple[AssociationEnd, AssociationEnd]:
        assert first.type is not None and second.type is not None
        return (
            AssociationEnd(first, host_type=second.type, target_type=first.type),
            AssociationEnd(second, host_type=first.type, target_type=second.type),
        )


class DeclaredTypeEndResolver(AssociationEndResolver):
    "Resolves ends where the type of an end is the type the end belongs to."

    def resolve_ends(
        self, first: Property, second: Property
    ) -> tuple[AssociationEnd, AssociationEnd]:
        assert first.type is not None and second.type is not None
        return (
            AssociationEnd(first, host_type=first.type, target_type=second.type),
            AssociationEnd(second, host_type=second.type, target_type=first.type),
        )


class AssociationMapBuilder:
    """
    Builds a map from dependent type to relationship descriptors.

    Covers both binary associations and relationship attributes that are not part of any association. Descriptors are
    appended in discovery order, and are never overwritten.
    """

    column_spec_provider: SqlColumnSpecProvider
    end_resolver: AssociationEndResolver

    def __init__(
        self,
        column_spec_provider: Optional[SqlColumnSpecProvider] = None,
        end_resolver: Optional[AssociationEndResolver] = None,
    ) -> None:
        self.column_spec_provider = column_spec_provider or SqlColumnSpecProvider()
        self.end_resolver = end_resolver or OppositeTypeEndResolver()
        self._map: AssociationMap = {}

    def get_map(self) -> AssociationMap:
        return self._map

    def _add(self, info: TypeAssociationInfo) -> None:
        self._map.setdefault(info.to_type.id, []).append(info)

    @staticmethod
    def from_association_ends(
        to_end: AssociationEnd, from_end: AssociationEnd
    ) -> TypeAssociationInfo:
        "Derives the descriptor for the direction in which the near end is `to_end`."

        return TypeAssociationInfo(
            from_type=to_end.target_type,
            from_property=from_end.property,
            to_type=to_end.host_type,
            to_property=to_end.property,
            from_property_is_owned_by_type=to_end.property.owner is to_end.host_type,
            is_one_to_many=not to_end.property.is_multivalued()
            and from_end.property.is_multivalued(),
        )

    @staticmethod
    def from_attribute(owning_type: Type, prop: Property) -> TypeAssociationInfo:
        "Derives the descriptor for a relationship attribute that is not an association end."

        assert prop.type is not None
        return TypeAssociationInfo(
            from_type=owning_type,
            from_property=prop,
            to_type=prop.type,
            to_property=None,
            from_property_is_owned_by_type=False,
            is_one_to_many=prop.is_multivalued(),
        )

    def add_associations(
        self, associations: Iterable[Association]
    ) -> "AssociationMapBuilder":
        for association in associations:
            ends = self.end_resolver.resolve(association)
            if ends is None:
                continue

            first, second = ends
            self._add(self.from_association_ends(first, second))
            self._add(self.from_association_ends(second, first))

        return self

    def add_attribute_relations(self, model: Model) -> "AssociationMapBuilder":
        for typ in model.get_all_types():
            if not typ.is_membered_classifier():
                continue

            for prop in typ.owned_attributes:
                if not self.column_spec_provider.is_relationship(prop):
                    continue

                # association ends are covered by `add_associations`
                if prop.association is not None:
                    continue

                self._add(self.from_attribute(typ, prop))

        return self


def build_association_map(
    model: Model,
    column_spec_provider: Optional[SqlColumnSpecProvider] = None,
    end_resolver: Optional[AssociationEndResolver] = None,
) -> AssociationMap:
    "Analyzes all associations and relationship attributes of a model."

    return (
        AssociationMapBuilder(column_spec_provider, end_resolver)
        .add_associations(model.associations)
        .add_attribute_relations(model)
        .get_map()
    )
