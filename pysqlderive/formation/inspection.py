from typing import Optional

from ..model.elements import Property, Type
from .object_types import IdentityPropertyError


def find_identity_property(typ: Type) -> Optional[Property]:
    "Returns the first attribute of the type marked as identity, or `None` if the type declares no identity."

    for prop in typ.owned_attributes:
        if prop.is_id:
            return prop
    return None


def get_identity_property(typ: Type) -> Property:
    "Returns the identity attribute of a type that is required to have one."

    prop = find_identity_property(typ)
    if prop is None:
        raise IdentityPropertyError("type has no attribute with `is_id` set", typ)
    return prop


def is_relationship(prop: Property) -> bool:
    "True if the property references an entity type rather than holding a value."

    return prop.type is not None and not prop.type.is_data_type()
