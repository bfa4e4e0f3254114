from typing import Annotated, TypeVar

T = TypeVar("T")


class PrimaryKeyTag:
    "Marks a field as the identity property of a type, which becomes the primary key of a table."

    def __repr__(self) -> str:
        return "PrimaryKey"


class IdentityTag:
    "Marks a field as an identity column in a table."

    def __repr__(self) -> str:
        return "Identity"


PrimaryKey = Annotated[T, PrimaryKeyTag()]
Identity = Annotated[T, IdentityTag()]


def is_key_annotation(item: object) -> bool:
    return isinstance(item, (PrimaryKeyTag, IdentityTag))
