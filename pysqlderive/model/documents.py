"""
Serialized form of the object model.

A model document lists types with their attributes, and associations whose ends either refer to an attribute (a
navigable end) or are owned by the association. Types are referenced by identifier. Primitive types may be referenced
by their well-known name, e.g. `string`, or their identifier, e.g. `primitive:string`.
An upper bound of `-1` marks a multi-valued attribute or association end.
"""

from dataclasses import dataclass, field
from typing import Optional

from strong_typing.core import JsonType
from strong_typing.serialization import json_to_object

from ..formation.object_types import MappingError
from .elements import ElementKind, Model, PrimitiveTypes, Property, Type


@dataclass
class AttributeDocument:
    """
    An attribute owned by a type.

    :param name: Name of the attribute.
    :param type: Identifier of the type of the attribute.
    :param lower: Lower bound of multiplicity.
    :param upper: Upper bound of multiplicity, `-1` if unbounded.
    :param is_id: True if the attribute identifies instances of the type.
    :param id: Stable identifier of the attribute, referenced by association ends.
    """

    name: str
    type: Optional[str] = None
    lower: int = 1
    upper: int = 1
    is_id: bool = False
    id: Optional[str] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None


@dataclass
class TypeDocument:
    id: str
    name: str
    kind: ElementKind = ElementKind.CLASS
    base_type: Optional[str] = None
    attributes: list[AttributeDocument] = field(default_factory=list)


@dataclass
class AssociationEndDocument:
    """
    An end of an association.

    :param attribute: Identifier of the attribute that realizes this end. When set, other fields are ignored.
    :param name: Name of an end owned by the association.
    :param type: Identifier of the type of an end owned by the association.
    :param lower: Lower bound of multiplicity of an end owned by the association.
    :param upper: Upper bound of multiplicity of an end owned by the association, `-1` if unbounded.
    """

    attribute: Optional[str] = None
    name: str = ""
    type: Optional[str] = None
    lower: int = 1
    upper: int = 1


@dataclass
class AssociationDocument:
    id: str
    name: str = ""
    ends: list[AssociationEndDocument] = field(default_factory=list)


@dataclass
class ModelDocument:
    name: str
    types: list[TypeDocument] = field(default_factory=list)
    associations: list[AssociationDocument] = field(default_factory=list)


UNBOUNDED = -1
"Upper bound of multiplicity in a document that stands for an unlimited number of values."


def _upper_bound(upper: int, context: str) -> Optional[int]:
    if upper == UNBOUNDED:
        return None
    if upper < 0:
        raise MappingError(f"{context} has invalid upper bound: {upper}")
    return upper


class _ModelResolver:
    "Resolves identifier references of a model document into an object graph."

    model: Model
    types: dict[str, Type]
    attributes: dict[str, Property]

    def __init__(self, name: str) -> None:
        self.model = Model(name)
        self.types = {}
        self.attributes = {}

    def get_type(self, ref: str, context: str) -> Type:
        typ = self.types.get(ref)
        if typ is not None:
            return typ

        try:
            return PrimitiveTypes.get(ref.removeprefix("primitive:"))
        except KeyError:
            raise MappingError(f"{context} references unknown type: {ref}") from None

    def resolve(self, document: ModelDocument) -> Model:
        for type_doc in document.types:
            if type_doc.id in self.types:
                raise MappingError(f"duplicate type identifier: {type_doc.id}")
            self.types[type_doc.id] = self.model.create_type(
                type_doc.name, type_doc.kind, id=type_doc.id
            )

        for type_doc in document.types:
            typ = self.types[type_doc.id]
            if type_doc.base_type is not None:
                typ.base_type = self.get_type(type_doc.base_type, f"type {type_doc.id}")
            for attr in type_doc.attributes:
                self.add_attribute(typ, attr)

        for association_doc in document.associations:
            self.add_association(association_doc)

        return self.model

    def add_attribute(self, typ: Type, attr: AttributeDocument) -> None:
        attr_type = (
            self.get_type(attr.type, f"attribute {typ.id}.{attr.name}")
            if attr.type is not None
            else None
        )
        prop = typ.add_attribute(
            attr.name,
            attr_type,
            lower=attr.lower,
            upper=_upper_bound(attr.upper, f"attribute {typ.id}.{attr.name}"),
            is_id=attr.is_id,
            max_length=attr.max_length,
            precision=attr.precision,
            scale=attr.scale,
            id=attr.id,
        )
        self.attributes[prop.id] = prop

    def add_association(self, doc: AssociationDocument) -> None:
        association = self.model.create_association(doc.name, id=doc.id)
        for end in doc.ends:
            if end.attribute is not None:
                prop = self.attributes.get(end.attribute)
                if prop is None:
                    raise MappingError(
                        f"association {doc.id} references unknown attribute: {end.attribute}"
                    )
                association.add_member_end(prop)
            elif end.type is not None:
                association.create_owned_end(
                    end.name,
                    self.get_type(end.type, f"association {doc.id}"),
                    lower=end.lower,
                    upper=_upper_bound(end.upper, f"association {doc.id}"),
                )
            else:
                raise MappingError(
                    f"association {doc.id} has an end with neither attribute nor type"
                )


def document_to_model(document: ModelDocument) -> Model:
    "Builds an object model from a model document."

    return _ModelResolver(document.name).resolve(document)


def json_to_model(data: JsonType) -> Model:
    "Builds an object model from the JSON representation of a model document."

    return document_to_model(json_to_object(ModelDocument, data))
