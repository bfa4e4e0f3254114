"""
Object model consumed by the relational schema builder.

The object model is a graph of types, properties and associations. The schema builder treats the graph as read-only
for the duration of a build.
"""

import enum
import itertools
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union


@enum.unique
class ElementKind(enum.Enum):
    "Classification of a type in the object model."

    CLASS = "class"
    "An entity type with identity, mapped to a table."

    INTERFACE = "interface"
    "An abstract entity type."

    DATA_TYPE = "dataType"
    "A value type whose instances are identified only by their value."

    PRIMITIVE_TYPE = "primitiveType"
    "A predefined value type such as an integer or a string."

    ENUMERATION = "enumeration"
    "A value type with a finite set of named literals."


@dataclass(eq=False)
class Property:
    """
    An attribute of a type or an end of an association.

    :param id: Stable identifier of the property.
    :param name: Name of the property. Association ends may be unnamed.
    :param type: The type of values the property holds.
    :param owner: The type or association that owns the property.
    :param lower: Lower bound of multiplicity, 0 means optional.
    :param upper: Upper bound of multiplicity, `None` means unbounded.
    :param is_id: True if the property is the identity attribute of its owner.
    :param association: The association the property is a member end of.
    :param max_length: Maximum length of string or binary values.
    :param precision: Total number of significant digits of decimal values.
    :param scale: Number of digits after the decimal point.
    """

    id: str
    name: str
    type: Optional["Type"]
    owner: Union["Type", "Association", None] = None
    lower: int = 1
    upper: Optional[int] = 1
    is_id: bool = False
    association: Optional["Association"] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def is_multivalued(self) -> bool:
        return self.upper is None or self.upper > 1

    def is_optional(self) -> bool:
        return self.lower == 0

    def get_type_name(self) -> str:
        return self.type.name if self.type is not None else ""

    def __repr__(self) -> str:
        owner = self.owner.name if self.owner is not None else None
        return f"Property({self.id!r}, {owner!r}.{self.name!r}: {self.get_type_name()!r})"


@dataclass(eq=False)
class Type:
    """
    A named entity or value type in the object model.

    :param id: Stable identifier of the type, unique within a model.
    :param name: Name of the type.
    :param kind: Classification of the type.
    :param owned_attributes: Attributes owned by the type, in declaration order.
    :param base_type: Type this type derives from, e.g. the underlying type of an enumeration.
    """

    id: str
    name: str
    kind: ElementKind = ElementKind.CLASS
    owned_attributes: list[Property] = field(default_factory=list)
    base_type: Optional["Type"] = None

    def is_data_type(self) -> bool:
        "True for value types, i.e. types that map to a column type rather than a table."

        return self.kind in (
            ElementKind.DATA_TYPE,
            ElementKind.PRIMITIVE_TYPE,
            ElementKind.ENUMERATION,
        )

    def is_primitive(self) -> bool:
        return self.kind is ElementKind.PRIMITIVE_TYPE

    def is_enumeration(self) -> bool:
        return self.kind is ElementKind.ENUMERATION

    def is_membered_classifier(self) -> bool:
        "True for types that can own attributes."

        return self.kind in (
            ElementKind.CLASS,
            ElementKind.INTERFACE,
            ElementKind.DATA_TYPE,
        )

    def add_attribute(
        self,
        name: str,
        type: Optional["Type"],
        *,
        lower: int = 1,
        upper: Optional[int] = 1,
        is_id: bool = False,
        max_length: Optional[int] = None,
        precision: Optional[int] = None,
        scale: Optional[int] = None,
        id: Optional[str] = None,
    ) -> Property:
        "Creates a new attribute owned by this type."

        if id is None:
            id = f"{self.id}.{name or len(self.owned_attributes)}"
        prop = Property(
            id,
            name,
            type,
            self,
            lower=lower,
            upper=upper,
            is_id=is_id,
            max_length=max_length,
            precision=precision,
            scale=scale,
        )
        self.owned_attributes.append(prop)
        return prop

    def __repr__(self) -> str:
        return f"Type({self.id!r}, {self.name!r}, {self.kind.name})"


@dataclass(eq=False)
class Association:
    """
    A relationship between types.

    Only binary associations (with exactly two member ends) take part in schema derivation.

    :param id: Stable identifier of the association.
    :param name: Name of the association.
    :param member_ends: Properties that represent the ends of the association.
    """

    id: str
    name: str = ""
    member_ends: list[Property] = field(default_factory=list)

    def add_member_end(self, prop: Property) -> Property:
        "Registers a property (typically a navigable attribute of a type) as an end of this association."

        prop.association = self
        self.member_ends.append(prop)
        return prop

    def create_owned_end(
        self,
        name: str,
        type: "Type",
        *,
        lower: int = 1,
        upper: Optional[int] = 1,
    ) -> Property:
        "Creates a (non-navigable) end owned by the association itself."

        prop = Property(
            f"{self.id}.{len(self.member_ends)}",
            name,
            type,
            self,
            lower=lower,
            upper=upper,
        )
        return self.add_member_end(prop)

    def __repr__(self) -> str:
        return f"Association({self.id!r}, {self.name!r})"


PackagedElement = Union[Type, Association]


class Model:
    """
    A container of types and associations.

    :param name: Name of the model.
    :param packaged_elements: Types and associations in declaration order.
    """

    name: str
    packaged_elements: list[PackagedElement]

    def __init__(
        self, name: str = "", packaged_elements: Optional[list[PackagedElement]] = None
    ) -> None:
        self.name = name
        self.packaged_elements = packaged_elements or []
        self._counter = itertools.count(1)

    def get_all_types(self) -> list[Type]:
        "Types in the model, in declaration order."

        return [e for e in self.packaged_elements if isinstance(e, Type)]

    @property
    def associations(self) -> list[Association]:
        return [e for e in self.packaged_elements if isinstance(e, Association)]

    def get_type(self, id: str) -> Type:
        for typ in self.get_all_types():
            if typ.id == id:
                return typ

        raise KeyError(f"type not found in model: {id}")

    def __iter__(self) -> Iterator[PackagedElement]:
        return iter(self.packaged_elements)

    def create_type(
        self,
        name: str,
        kind: ElementKind = ElementKind.CLASS,
        *,
        base_type: Optional[Type] = None,
        id: Optional[str] = None,
    ) -> Type:
        "Creates a new type and adds it to the model."

        typ = Type(
            id if id is not None else f"{name or 'type'}#{next(self._counter)}",
            name,
            kind,
            base_type=base_type,
        )
        self.packaged_elements.append(typ)
        return typ

    def create_association(
        self, name: str = "", *, id: Optional[str] = None
    ) -> Association:
        "Creates a new association without member ends and adds it to the model."

        association = Association(
            id if id is not None else f"{name or 'association'}#{next(self._counter)}",
            name,
        )
        self.packaged_elements.append(association)
        return association


def _primitive(name: str) -> Type:
    return Type(f"primitive:{name}", name, ElementKind.PRIMITIVE_TYPE)


class PrimitiveTypes:
    "Shared library of primitive types. Primitive types are not packaged in user models."

    boolean = _primitive("boolean")
    integer = _primitive("integer")
    long = _primitive("long")
    short = _primitive("short")
    byte = _primitive("byte")
    real = _primitive("real")
    double = _primitive("double")
    decimal = _primitive("decimal")
    string = _primitive("string")
    date = _primitive("date")
    time = _primitive("time")
    date_time = _primitive("dateTime")
    uuid = _primitive("uuid")
    binary = _primitive("binary")
    object = _primitive("object")

    @classmethod
    def all(cls) -> list[Type]:
        return [v for v in vars(cls).values() if isinstance(v, Type)]

    @classmethod
    def get(cls, name: str) -> Type:
        "Looks up a primitive type by its well-known name."

        for typ in cls.all():
            if typ.name == name:
                return typ

        raise KeyError(f"not a primitive type: {name}")
