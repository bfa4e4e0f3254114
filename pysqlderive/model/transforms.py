import logging
from typing import Callable, Optional

from .elements import Model, Property, Type

LOGGER = logging.getLogger("pysqlderive")


class AddIdentityTransform:
    """
    Adds an identity property to each membered classifier in a model.

    The identity property is inserted as the first attribute of the type, such that it becomes the first column of
    the table. Types that already have an identity property are left unchanged.

    :param identity_type: The type of the identity property to create.
    :param name_callback: Returns the name of the identity property for a type. Defaults to `Id`.
    """

    identity_type: Type
    name_callback: Optional[Callable[[Type], str]]

    def __init__(
        self,
        identity_type: Type,
        name_callback: Optional[Callable[[Type], str]] = None,
    ) -> None:
        self.identity_type = identity_type
        self.name_callback = name_callback

    def apply(self, model: Model) -> Model:
        "Transforms the model in place, and returns the same model."

        for typ in model.get_all_types():
            if not typ.is_membered_classifier():
                continue
            if any(prop.is_id for prop in typ.owned_attributes):
                LOGGER.debug("type %r already has an identity property", typ.name)
                continue

            self.add_identity(typ)

        return model

    def add_identity(self, typ: Type) -> Property:
        name = self.name_callback(typ) if self.name_callback is not None else "Id"
        prop = Property(
            f"{typ.id}.{name}",
            name,
            self.identity_type,
            typ,
            is_id=True,
        )
        typ.owned_attributes.insert(0, prop)
        return prop
