# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

from abc import ABC
from typing import List

from pyrelink.ledger import FieldDescriptor

NULL_FLAG = -3
NOT_NULL_VALUE_FLAG = -1


class Serializer(ABC):
    """
    Base of every serializer.

    `write(writer, value)` appends the value's body through the writer
    session and `read(reader)` returns a freshly built value. Serializers of
    graph objects additionally split reading into `new_instance` and
    `read_into`, so the reader can bind the empty instance to its identity
    before any field is populated.
    """

    __slots__ = "relink", "type_"

    # Table of pointer-typed fields. Ledger entries refer to a field by its
    # position here; types without references keep the empty table.
    ref_fields: List[FieldDescriptor] = []

    def __init__(self, relink, type_: type):
        self.relink = relink
        self.type_: type = type_

    def write(self, writer, value):
        raise NotImplementedError

    def read(self, reader):
        raise NotImplementedError

    def new_instance(self):
        raise NotImplementedError(f"{type(self).__name__} can't build graph objects")

    def read_into(self, reader, obj):
        raise NotImplementedError(f"{type(self).__name__} can't build graph objects")

    @property
    def has_references(self) -> bool:
        return len(self.ref_fields) > 0


class BooleanSerializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_bool(value)

    def read(self, reader):
        return reader.buffer.read_bool()


class ByteSerializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_int8(value)

    def read(self, reader):
        return reader.buffer.read_int8()


class Int16Serializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_int16(value)

    def read(self, reader):
        return reader.buffer.read_int16()


class Int32Serializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_int32(value)

    def read(self, reader):
        return reader.buffer.read_int32()


class Int64Serializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_int64(value)

    def read(self, reader):
        return reader.buffer.read_int64()


class Float32Serializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_float32(value)

    def read(self, reader):
        return reader.buffer.read_float32()


class Float64Serializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_float64(value)

    def read(self, reader):
        return reader.buffer.read_float64()


class StringSerializer(Serializer):
    def write(self, writer, value: str):
        writer.buffer.write_text(value)

    def read(self, reader):
        return reader.buffer.read_text()


class BytesSerializer(Serializer):
    def write(self, writer, value):
        buffer = writer.buffer
        buffer.write_int32(len(value))
        buffer.write_bytes(value)

    def read(self, reader):
        buffer = reader.buffer
        return buffer.read_bytes(buffer.read_int32())


class EnumSerializer(Serializer):
    def write(self, writer, value):
        writer.buffer.write_text(value.name)

    def read(self, reader):
        name = reader.buffer.read_text()
        return getattr(self.type_, name)


class NullableSerializer(Serializer):
    """Writes a null flag before values of an `Optional[...]` field."""

    __slots__ = ("serializer",)

    def __init__(self, relink, serializer: Serializer):
        super().__init__(relink, serializer.type_)
        self.serializer = serializer

    def write(self, writer, value):
        if value is None:
            writer.buffer.write_int8(NULL_FLAG)
        else:
            writer.buffer.write_int8(NOT_NULL_VALUE_FLAG)
            self.serializer.write(writer, value)

    def read(self, reader):
        if reader.buffer.read_int8() == NULL_FLAG:
            return None
        return self.serializer.read(reader)
