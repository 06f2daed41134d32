from __future__ import annotations

import dataclasses
import enum
import typing

from typing_extensions import Self

CALLABLE_T = typing.TypeVar("CALLABLE_T", bound=typing.Callable)

NOT_SET = object()


class FixedIntType(int):
    """An integer restricted to the range of a fixed-width machine integer."""

    _signed: bool | None = None
    _bits: int | None = None

    min_value: int
    max_value: int

    def __new__(cls, *args, **kwargs):
        if cls._signed is None or cls._bits is None:
            raise TypeError(f"{cls.__name__} has no fixed width and cannot be created")

        # `int()` would silently truncate
        if args and isinstance(args[0], float) and not args[0].is_integer():
            raise ValueError(f"{args[0]} is not an integer")

        n = super().__new__(cls, *args, **kwargs)

        # `int(n)` would recurse into enum subclasses, compare the raw value
        value = int.__int__(n)

        if not cls.min_value <= value <= cls.max_value:
            raise ValueError(
                f"{value} is out of range for {cls.__name__}"
                f" ({cls.min_value}..{cls.max_value})"
            )

        return n

    def _hex_repr(self) -> str:
        return f"0x{int.__int__(self):0{self._bits // 4}X}"

    def __init_subclass__(cls, signed=NOT_SET, bits=NOT_SET, repr=NOT_SET) -> None:
        super().__init_subclass__()

        if signed is not NOT_SET:
            cls._signed = signed

        if bits is not NOT_SET:
            cls._bits = bits

        if cls._signed is not None and cls._bits is not None:
            if cls._signed:
                cls.min_value = -(1 << (cls._bits - 1))
                cls.max_value = (1 << (cls._bits - 1)) - 1
            else:
                cls.min_value = 0
                cls.max_value = (1 << cls._bits) - 1

        if repr == "hex":
            assert cls._bits % 4 == 0
            cls.__str__ = cls.__repr__ = cls._hex_repr
        elif not repr:
            cls.__str__ = super().__str__
            cls.__repr__ = super().__repr__
        elif repr is not NOT_SET:
            raise ValueError(f"Invalid repr value {repr!r}, only 'hex' is supported")

        # Enum replaces `__reduce_ex__` with one that refuses to pickle
        if "__reduce_ex__" not in cls.__dict__:
            cls.__reduce_ex__ = cls.__reduce_ex__


class uint_t(FixedIntType, signed=False):
    pass


class int_t(FixedIntType, signed=True):
    pass


class int64s(int_t, bits=64):
    pass


class uint8_t(uint_t, bits=8):
    pass


class uint16_t(uint_t, bits=16):
    pass


class uint32_t(uint_t, bits=32):
    pass


class uint64_t(uint_t, bits=64):
    pass


class EndpointId(uint16_t, repr="hex"):
    pass


class ClusterId(uint32_t, repr="hex"):
    pass


class AttributeId(uint32_t, repr="hex"):
    pass


class VendorId(uint16_t, repr="hex"):
    pass


class ProductId(uint16_t, repr="hex"):
    pass


class _IntEnumMeta(enum.EnumMeta):
    def __call__(cls, value):  # type: ignore[override]  # noqa: N805
        """Look members up by value, or by a name or number given as a string."""
        if isinstance(value, str):
            prefix = f"{cls.__name__}."

            if value.startswith("0x"):
                value = int(value, 16)
            elif value.isnumeric():
                value = int(value)
            else:
                value = cls[value.removeprefix(prefix)].value

        return super().__call__(value)


def enum_factory(int_type: CALLABLE_T, undefined: str = "undefined") -> CALLABLE_T:
    """Enum over a fixed-width integer type, values without a member stay usable."""

    class _IntEnum(int_type, enum.Enum, metaclass=_IntEnumMeta):
        @classmethod
        def _missing_(cls, value):
            member = cls._member_type_.__new__(cls, value)
            member._name_ = f"{undefined}_{member._hex_repr().lower()}"
            member._value_ = value
            return member

        def __format__(self, format_spec: str) -> str:
            # `f"{member:04X}"` formats the value, `f"{member}"` the member repr
            if format_spec:
                return self._member_type_.__format__(self, format_spec)

            return object.__format__(repr(self), format_spec)

    return _IntEnum


def bitmap_factory(int_type: CALLABLE_T) -> CALLABLE_T:
    """Flags over a fixed-width integer type, bits without a member are kept."""

    class _IntFlag(int_type, enum.ReprEnum, enum.Flag, boundary=enum.KEEP):
        pass

    return _IntFlag


class enum8(enum_factory(uint8_t)):  # noqa: N801
    pass


class enum32(enum_factory(uint32_t)):  # noqa: N801
    pass


class bitmap8(bitmap_factory(uint8_t)):
    pass


class bitmap32(bitmap_factory(uint32_t)):
    pass


class BaseDataclassMixin:
    def replace(self, **kwargs: typing.Any) -> Self:
        assert dataclasses.is_dataclass(self) and not isinstance(self, type)
        return dataclasses.replace(self, **kwargs)
