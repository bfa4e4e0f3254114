import datetime
import decimal
import enum
import inspect
import logging
import sys
import types
import uuid
from typing import Any, Optional

from strong_typing.auxiliary import (
    MaxLength,
    Precision,
    float32,
    float64,
    int8,
    int16,
    int32,
    int64,
)
from strong_typing.inspection import (
    DataclassField,
    DataclassInstance,
    TypeLike,
    dataclass_fields,
    is_dataclass_type,
    is_generic_list,
    is_generic_set,
    is_type_enum,
    is_type_optional,
    unwrap_annotated_type,
    unwrap_generic_list,
    unwrap_generic_set,
    unwrap_optional_type,
)

from ..model.elements import ElementKind, Model, PrimitiveTypes, Property, Type
from ..model.key_types import is_key_annotation

LOGGER = logging.getLogger("pysqlderive")


def _primitive_type(typ: TypeLike) -> Optional[Type]:
    "Maps a simple Python type to a primitive type of the object model."

    # sized aliases are annotated types, compare them before unwrapping
    if typ is int8:
        return PrimitiveTypes.byte
    if typ is int16:
        return PrimitiveTypes.short
    if typ is int32:
        return PrimitiveTypes.integer
    if typ is int64:
        return PrimitiveTypes.long
    if typ is float32:
        return PrimitiveTypes.real
    if typ is float64:
        return PrimitiveTypes.double

    if typ is bool:
        return PrimitiveTypes.boolean
    if typ is int:
        return PrimitiveTypes.integer
    if typ is float:
        return PrimitiveTypes.double
    if typ is str:
        return PrimitiveTypes.string
    if typ is decimal.Decimal:
        return PrimitiveTypes.decimal
    if typ is datetime.datetime:
        return PrimitiveTypes.date_time
    if typ is datetime.date:
        return PrimitiveTypes.date
    if typ is datetime.time:
        return PrimitiveTypes.time
    if typ is uuid.UUID:
        return PrimitiveTypes.uuid
    if typ is bytes:
        return PrimitiveTypes.binary

    return None


class DataclassConverter:
    """
    Converts Python data-class types into an object model.

    Each data-class becomes a class in the model. A field annotated with `PrimaryKey` (or `Identity`) becomes the
    identity property. A field whose type is another data-class, or a list or set of data-classes, becomes a
    relationship property. Referenced data-classes are added to the model even if they are not listed explicitly.
    """

    model: Model
    _classes: dict[type, Type]
    _enums: dict[type, Type]

    def __init__(self, name: str = "model") -> None:
        self.model = Model(name)
        self._classes = {}
        self._enums = {}

    def dataclasses_to_model(self, classes: list[type[DataclassInstance]]) -> Model:
        "Converts a list of data-class types into an object model."

        for cls in classes:
            self._declare_class(cls)

        # resolving a field may declare further classes
        converted = 0
        while converted < len(self._classes):
            cls, typ = list(self._classes.items())[converted]
            self.dataclass_to_type(cls, typ)
            converted += 1

        return self.model

    def modules_to_model(self, modules: list[types.ModuleType]) -> Model:
        "Converts all data-class types defined in a list of modules into an object model."

        classes: list[type[DataclassInstance]] = []
        for module in modules:
            for name, obj in inspect.getmembers(module, is_dataclass_type):
                if sys.modules[obj.__module__] in modules:
                    classes.append(obj)
        return self.dataclasses_to_model(classes)

    def _declare_class(self, cls: type) -> tuple[type, Type]:
        if not is_dataclass_type(cls):
            raise TypeError(f"expected: dataclass type; got: {cls}")

        typ = self._classes.get(cls)
        if typ is None:
            typ = self.model.create_type(
                cls.__name__,
                ElementKind.CLASS,
                id=f"{cls.__module__}.{cls.__qualname__}",
            )
            self._classes[cls] = typ
        return cls, typ

    def _declare_enum(self, enum_type: type[enum.Enum]) -> Type:
        typ = self._enums.get(enum_type)
        if typ is None:
            if all(isinstance(e.value, int) for e in enum_type):
                base_type = PrimitiveTypes.integer
            else:
                base_type = PrimitiveTypes.string

            typ = self.model.create_type(
                enum_type.__name__,
                ElementKind.ENUMERATION,
                base_type=base_type,
                id=f"{enum_type.__module__}.{enum_type.__qualname__}",
            )
            self._enums[enum_type] = typ
        return typ

    def dataclass_to_type(self, cls: type[DataclassInstance], typ: Type) -> None:
        LOGGER.debug("converting dataclass `%s` into type %r", cls.__name__, typ.name)
        for field in dataclass_fields(cls):
            self.member_to_property(field, cls, typ)

    def member_to_property(
        self, field: DataclassField, cls: type, owner: Type
    ) -> Property:
        "Converts a data-class field into a property of the object model."

        lower: int = 1
        upper: Optional[int] = 1
        metadata: list[Any] = []

        typ: TypeLike = field.type
        target: Optional[Type] = None
        while True:
            target = _primitive_type(typ)
            if target is not None:
                break

            annotations = getattr(typ, "__metadata__", None)
            if annotations:
                metadata.extend(annotations)
                typ = unwrap_annotated_type(typ)
            elif is_type_optional(typ):
                lower = 0
                typ = unwrap_optional_type(typ)
            elif is_generic_list(typ) or is_generic_set(typ):
                if upper is None:
                    raise TypeError(
                        f"nested collection types are not supported in field `{field.name}` of class `{cls.__name__}`"
                    )
                lower = 0
                upper = None
                typ = (
                    unwrap_generic_list(typ)
                    if is_generic_list(typ)
                    else unwrap_generic_set(typ)
                )
            else:
                break

        if target is None:
            if is_dataclass_type(typ):
                _, target = self._declare_class(typ)
            elif is_type_enum(typ):
                target = self._declare_enum(typ)
            else:
                raise TypeError(
                    f"unsupported type of field `{field.name}` in class `{cls.__name__}`: {typ}"
                )

        max_length: Optional[int] = None
        precision: Optional[int] = None
        scale: Optional[int] = None
        for meta in metadata:
            if isinstance(meta, MaxLength):
                max_length = meta.value
            elif isinstance(meta, Precision):
                precision = meta.significant_digits
                scale = meta.decimal_digits

        return owner.add_attribute(
            field.name,
            target,
            lower=lower,
            upper=upper,
            is_id=any(is_key_annotation(meta) for meta in metadata),
            max_length=max_length,
            precision=precision,
            scale=scale,
        )


def dataclasses_to_model(
    classes: list[type[DataclassInstance]], *, name: str = "model"
) -> Model:
    "Converts a list of data-class types into an object model."

    return DataclassConverter(name).dataclasses_to_model(classes)


def modules_to_model(modules: list[types.ModuleType], *, name: str = "model") -> Model:
    "Converts the data-class types of a list of Python modules into an object model."

    return DataclassConverter(name).modules_to_model(modules)
