"""
Converters for optionals, sequences, maps, records and tagged unions.

These are built once per declared type by the generated bindings and may be
nested arbitrarily, e.g.::

    Receipt = RecordConverter(ReceiptRecord, [
        ("amount_msat", UInt64),
        ("memo", OptionalConverter(String)),
        ("hops", SequenceConverter(RouteHopConverter)),
    ])
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

from dataclasses import fields as dataclass_fields
from dataclasses import is_dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Type

from ..errors import BufferUnderflowError, FfiError, InvalidValueError
from .converter import FfiConverter, read_discriminant, write_discriminant
from .primitives import String, check_length, read_length
from .stream import I32, U8, ByteReader, ByteWriter

Field = Tuple[str, FfiConverter]

# Elements that encode to zero bytes give no underflow signal, so their count is capped.
MAX_ZERO_WIDTH_COUNT = 2**16


def check_count(count: int, width: int, reader: ByteReader, type_name: str) -> None:
    """Reject a declared count the remaining bytes cannot hold, before decoding any element."""
    if width:
        if count > reader.remaining // width:
            raise BufferUnderflowError(count * width, reader.remaining)
    elif count > MAX_ZERO_WIDTH_COUNT:
        raise InvalidValueError(
            f"{type_name} declares {count} zero-width elements (limit {MAX_ZERO_WIDTH_COUNT})"
        )


class OptionalConverter(FfiConverter):
    min_width = 1

    def __init__(self, inner: FfiConverter):
        self.inner = inner
        self.type_name = f"Optional[{inner.type_name}]"

    def check_lower(self, value: Any) -> None:
        if value is not None:
            self.inner.check_lower(value)

    def read(self, reader: ByteReader) -> Any:
        flag = reader.read_one(U8)
        if flag == 0:
            return None
        if flag == 1:
            return self.inner.read(reader)
        raise InvalidValueError(f"unexpected presence flag {flag} for {self.type_name}")

    def write(self, value: Any, writer: ByteWriter) -> None:
        if value is None:
            writer.write_struct(U8, 0)
        else:
            writer.write_struct(U8, 1)
            self.inner.write(value, writer)


class SequenceConverter(FfiConverter):
    min_width = 4

    def __init__(self, inner: FfiConverter):
        self.inner = inner
        self.type_name = f"Sequence[{inner.type_name}]"

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"{self.type_name} expects a list or tuple, got {type(value).__name__}")
        check_length(len(value), self.type_name)
        for item in value:
            self.inner.check_lower(item)

    def read(self, reader: ByteReader) -> List[Any]:
        count = read_length(reader, self.type_name)
        check_count(count, self.inner.min_width, reader, self.type_name)
        return [self.inner.read(reader) for _ in range(count)]

    def write(self, value: Sequence[Any], writer: ByteWriter) -> None:
        writer.write_struct(I32, len(value))
        for item in value:
            self.inner.write(item, writer)


class MapConverter(FfiConverter):
    """Count-prefixed key/value pairs; insertion order is preserved."""

    min_width = 4

    def __init__(self, key: FfiConverter, value: FfiConverter):
        self.key = key
        self.value = value
        self.type_name = f"Map[{key.type_name}, {value.type_name}]"

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, Mapping):
            raise TypeError(f"{self.type_name} expects a mapping, got {type(value).__name__}")
        check_length(len(value), self.type_name)
        for k, v in value.items():
            self.key.check_lower(k)
            self.value.check_lower(v)

    def read(self, reader: ByteReader) -> Dict[Any, Any]:
        count = read_length(reader, self.type_name)
        check_count(count, self.key.min_width + self.value.min_width, reader, self.type_name)
        result = {}
        for _ in range(count):
            k = self.key.read(reader)
            result[k] = self.value.read(reader)
        return result

    def write(self, value: Mapping[Any, Any], writer: ByteWriter) -> None:
        writer.write_struct(I32, len(value))
        for k, v in value.items():
            self.key.write(k, writer)
            self.value.write(v, writer)


class RecordConverter(FfiConverter):
    """
    Record as the concatenation of its fields in declared order.

    No field names or tags appear on the wire; the order given here is the
    contract with the native side.
    """

    def __init__(self, record_type: type, fields: Sequence[Field], type_name: Optional[str] = None):
        self.record_type = record_type
        self.fields = list(fields)
        self.type_name = type_name or record_type.__name__
        self.min_width = sum(converter.min_width for _, converter in self.fields)

    @classmethod
    def from_dataclass(cls, record_type: type, converters: Mapping[str, FfiConverter]) -> "RecordConverter":
        """Build a converter whose field order follows the dataclass declaration."""
        if not is_dataclass(record_type):
            raise TypeError(f"{record_type.__name__} is not a dataclass")
        names = [f.name for f in dataclass_fields(record_type)]
        missing = set(names) - set(converters)
        extra = set(converters) - set(names)
        if missing or extra:
            raise ValueError(
                f"converters for {record_type.__name__} do not match its fields "
                f"(missing: {sorted(missing)}, unexpected: {sorted(extra)})"
            )
        return cls(record_type, [(name, converters[name]) for name in names])

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, self.record_type):
            raise TypeError(f"{self.type_name} expects {self.record_type.__name__}, got {type(value).__name__}")
        for name, converter in self.fields:
            converter.check_lower(getattr(value, name))

    def read(self, reader: ByteReader) -> Any:
        return self.record_type(**{name: converter.read(reader) for name, converter in self.fields})

    def write(self, value: Any, writer: ByteWriter) -> None:
        for name, converter in self.fields:
            converter.write(getattr(value, name), writer)


class EnumConverter(FfiConverter):
    """Tagged union without payload, backed by a Python Enum in declaration order."""

    min_width = 4

    def __init__(self, enum_type: Type[Enum]):
        self.enum_type = enum_type
        self.members = list(enum_type)
        self._index = {member: i for i, member in enumerate(self.members)}
        self.type_name = enum_type.__name__

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, self.enum_type):
            raise TypeError(f"{self.type_name} expects a {self.type_name} member, got {value!r}")

    def read(self, reader: ByteReader) -> Enum:
        return self.members[read_discriminant(reader, self.type_name, len(self.members))]

    def write(self, value: Enum, writer: ByteWriter) -> None:
        write_discriminant(writer, self._index[value])


class Variant(NamedTuple):
    """One arm of a tagged union: the class to build plus its ordered fields."""

    variant_type: type
    fields: Sequence[Field] = ()


class UnionConverter(FfiConverter):
    """
    Tagged union with payload.

    Every variant is its own class; the discriminant is the 1-based position
    of the variant in ``variants``. Variants without fields carry no payload.
    """

    min_width = 4

    def __init__(self, type_name: str, variants: Sequence[Variant]):
        self.type_name = type_name
        self.variants = [Variant(v.variant_type, list(v.fields)) for v in variants]
        self._index = {v.variant_type: i for i, v in enumerate(self.variants)}

    def _variant_index(self, value: Any) -> int:
        index = self._index.get(type(value))
        if index is None:
            raise TypeError(f"{type(value).__name__} is not a variant of {self.type_name}")
        return index

    def check_lower(self, value: Any) -> None:
        variant = self.variants[self._variant_index(value)]
        for name, converter in variant.fields:
            converter.check_lower(getattr(value, name))

    def read(self, reader: ByteReader) -> Any:
        variant = self.variants[read_discriminant(reader, self.type_name, len(self.variants))]
        return variant.variant_type(**{name: conv.read(reader) for name, conv in variant.fields})

    def write(self, value: Any, writer: ByteWriter) -> None:
        index = self._variant_index(value)
        write_discriminant(writer, index)
        for name, converter in self.variants[index].fields:
            converter.write(getattr(value, name), writer)


class ErrorConverter(FfiConverter):
    """Typed error union: discriminant selecting the kind, then a message string."""

    min_width = 4

    def __init__(self, type_name: str, kinds: Sequence[Type[FfiError]]):
        self.type_name = type_name
        self.kinds = list(kinds)
        self._index = {kind: i for i, kind in enumerate(self.kinds)}

    def handles(self, error: BaseException) -> bool:
        return type(error) in self._index

    def check_lower(self, value: Any) -> None:
        if type(value) not in self._index:
            raise TypeError(f"{type(value).__name__} is not a kind of {self.type_name}")
        String.check_lower(value.message)

    def read(self, reader: ByteReader) -> FfiError:
        kind = self.kinds[read_discriminant(reader, self.type_name, len(self.kinds))]
        return kind(String.read(reader))

    def write(self, value: FfiError, writer: ByteWriter) -> None:
        write_discriminant(writer, self._index[type(value)])
        String.write(value.message, writer)
