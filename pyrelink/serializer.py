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

import array
import logging
from typing import List

from pyrelink._serializer import (  # noqa: F401 # pylint: disable=unused-import
    Serializer,
    BooleanSerializer,
    ByteSerializer,
    Int16Serializer,
    Int32Serializer,
    Int64Serializer,
    Float32Serializer,
    Float64Serializer,
    StringSerializer,
    BytesSerializer,
    EnumSerializer,
    NullableSerializer,
)
from pyrelink.collection import (  # noqa: F401 # pylint: disable=unused-import
    ValueSequenceSerializer,
    RefSequenceSerializer,
)
from pyrelink.ledger import FieldDescriptor
from pyrelink.struct import DataClassSerializer  # noqa: F401 # pylint: disable=unused-import

try:
    import numpy as np
except ImportError:
    np = None

logger = logging.getLogger(__name__)


class Serializable:
    """
    Opt-in capability for hand-written graph types.

    A class defines ``serialize(self, writer)`` and ``deserialize(self, reader)``
    which perform the same sequence of codec calls in the same order. Each
    class in a hierarchy only handles the fields it declares itself: the
    serializer runs the hooks of every class in the MRO, base classes first,
    so a subclass must not call ``super().serialize``.

    Pointer fields are listed in ``__relink_refs__`` and written with
    ``writer.write_reference(self, "name", target)``; on read,
    ``reader.read_reference()`` buffers the entry and the field is patched
    once the whole stream has been read. Instances are created with the
    no-argument constructor before ``deserialize`` runs.

    Example:
        >>> class Light(SceneNode):
        ...     def __init__(self):
        ...         super().__init__()
        ...         self.radius = 1.0
        ...
        ...     def serialize(self, writer):
        ...         writer.write_float32(self.radius)
        ...
        ...     def deserialize(self, reader):
        ...         self.radius = reader.read_float32()
    """

    __relink_refs__ = ()

    def serialize(self, writer):
        pass

    def deserialize(self, reader):
        pass


class SerializableSerializer(Serializer):
    def __init__(self, relink, cls):
        super().__init__(relink, cls)
        hierarchy = [klass for klass in reversed(cls.__mro__) if klass is not object and klass is not Serializable]
        self._write_hooks = [klass.__dict__["serialize"] for klass in hierarchy if "serialize" in klass.__dict__]
        self._read_hooks = [klass.__dict__["deserialize"] for klass in hierarchy if "deserialize" in klass.__dict__]
        if len(self._write_hooks) != len(self._read_hooks):
            logger.warning(
                "Type %s defines %s serialize hooks but %s deserialize hooks, the stream will desynchronize",
                cls,
                len(self._write_hooks),
                len(self._read_hooks),
            )
        self.ref_fields: List[FieldDescriptor] = []
        self._ref_field_by_name = {}
        for klass in hierarchy:
            for name in klass.__dict__.get("__relink_refs__", ()):
                if name in self._ref_field_by_name:
                    raise TypeError(f"Reference field {name} of {cls} is declared twice")
                descriptor = FieldDescriptor(len(self.ref_fields), name)
                self.ref_fields.append(descriptor)
                self._ref_field_by_name[name] = descriptor

    def ref_field(self, name: str) -> FieldDescriptor:
        descriptor = self._ref_field_by_name.get(name)
        if descriptor is None:
            raise TypeError(f"{self.type_} has no reference field {name}, list it in `__relink_refs__`")
        return descriptor

    def new_instance(self):
        return self.type_()

    def write(self, writer, value):
        for hook in self._write_hooks:
            hook(value, writer)

    def read_into(self, reader, obj):
        for hook in self._read_hooks:
            hook(obj, reader)
        return obj

    def read(self, reader):
        return self.read_into(reader, self.new_instance())


class PyArraySerializer(Serializer):
    """Writes an `array.array` as an owned sequence of fixed-width items."""

    def __init__(self, relink, ftype, typecode: str):
        super().__init__(relink, ftype)
        self.typecode = typecode
        self.itemsize = array.array(typecode).itemsize

    def write(self, writer, value: array.array):
        if value.typecode != self.typecode:
            value = array.array(self.typecode, value)
        buffer = writer.buffer
        buffer.write_int32(len(value))
        buffer.write_bytes(value.tobytes())

    def read(self, reader):
        buffer = reader.buffer
        count = buffer.read_int32()
        arr = array.array(self.typecode)
        arr.frombytes(buffer.read_bytes(count * self.itemsize))
        return arr


class NDArraySerializer(Serializer):
    """Writes a one-dimensional numpy array as an owned sequence of items."""

    def __init__(self, relink, ftype, dtype):
        super().__init__(relink, ftype)
        self.dtype = np.dtype(dtype)

    def write(self, writer, value):
        value = np.ascontiguousarray(value, dtype=self.dtype)
        if value.ndim != 1:
            raise ValueError(f"Only one-dimensional arrays can be written, got shape {value.shape}")
        buffer = writer.buffer
        buffer.write_int32(len(value))
        buffer.write_bytes(value.tobytes())

    def read(self, reader):
        buffer = reader.buffer
        count = buffer.read_int32()
        data = buffer.read_bytes(count * self.dtype.itemsize)
        return np.frombuffer(data, dtype=self.dtype).copy()
