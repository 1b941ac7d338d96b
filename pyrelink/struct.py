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

import dataclasses
import logging
import typing
from dataclasses import MISSING
from typing import List

from pyrelink._serializer import NullableSerializer, Serializer
from pyrelink.collection import RefSequenceSerializer, ValueSequenceSerializer
from pyrelink.field import extract_field_meta
from pyrelink.ledger import FieldDescriptor
from pyrelink.type_util import TypeVisitor, infer_field, is_list_type, unwrap_optional

logger = logging.getLogger(__name__)


class StructFieldSerializerVisitor(TypeVisitor):
    """Picks the serializer of a non-reference field from its annotation."""

    def __init__(self, relink):
        self.relink = relink

    def visit_list(self, field_name, elem_type, types_path=None):
        elem_type, nullable = unwrap_optional(elem_type)
        if is_list_type(elem_type):
            elem_serializer = infer_field(field_name, elem_type, self, types_path=types_path)
        else:
            elem_serializer = self.relink.type_resolver.get_serializer(elem_type)
        if nullable:
            elem_serializer = NullableSerializer(self.relink, elem_serializer)
        return ValueSequenceSerializer(self.relink, elem_serializer)

    def visit_customized(self, field_name, type_, types_path=None):
        serializer = self.relink.type_resolver.get_serializer(type_)
        if serializer.has_references:
            raise TypeError(
                f"Field {field_name}: {type_} has reference fields and can't be embedded by value, "
                "declare the field with `pyrelink.field(ref=True)` instead"
            )
        return serializer

    def visit_other(self, field_name, type_, types_path=None):
        return self.relink.type_resolver.get_serializer(type_)


class _ValueField:
    __slots__ = ("name", "serializer")

    def __init__(self, name: str, serializer: Serializer):
        self.name = name
        self.serializer = serializer

    def write(self, writer, obj):
        self.serializer.write(writer, getattr(obj, self.name))

    def read(self, reader, obj):
        object.__setattr__(obj, self.name, self.serializer.read(reader))


class _RefField:
    __slots__ = ("name", "descriptor", "weak")

    def __init__(self, descriptor: FieldDescriptor, weak: bool):
        self.name = descriptor.name
        self.descriptor = descriptor
        self.weak = weak

    def write(self, writer, obj):
        writer.write_reference(obj, self.descriptor, getattr(obj, self.name), weak=self.weak)

    def read(self, reader, obj):
        # the field keeps its default until the resolve pass patches it
        reader.read_reference()


class DataClassSerializer(Serializer):
    """
    Serializer derived from a dataclass declaration.

    Fields are visited in `dataclasses.fields` order, which lists the fields
    of base classes before those of subclasses. A subclass body therefore
    always starts with its parent's body, with nothing for the subclass to
    remember. Pointer fields get a slot in `ref_fields` in the same order.
    """

    def __init__(self, relink, clz: type):
        super().__init__(relink, clz)
        if not dataclasses.is_dataclass(clz):
            raise TypeError(f"{clz} is not a dataclass")
        self._type_hints = typing.get_type_hints(clz)
        self._dataclass_fields = dataclasses.fields(clz)
        self.ref_fields: List[FieldDescriptor] = []
        self._fields = []
        visitor = StructFieldSerializerVisitor(relink)
        for dataclass_field in self._dataclass_fields:
            meta = extract_field_meta(dataclass_field)
            if meta.ignore:
                continue
            name = dataclass_field.name
            hint = self._type_hints[name]
            if meta.ref:
                self._fields.append(self._ref_field(name, hint, meta.weak))
            else:
                unwrapped_type, nullable = unwrap_optional(hint)
                serializer = infer_field(name, unwrapped_type, visitor, types_path=[])
                if nullable:
                    serializer = NullableSerializer(relink, serializer)
                self._fields.append(_ValueField(name, serializer))
        logger.debug(
            "Built serializer for %s with %s fields, %s of them references",
            clz.__name__,
            len(self._fields),
            len(self.ref_fields),
        )

    def _ref_field(self, name, hint, weak):
        unwrapped_type, _ = unwrap_optional(hint)
        if is_list_type(unwrapped_type):
            return _ValueField(name, RefSequenceSerializer(self.relink, weak=weak))
        descriptor = FieldDescriptor(len(self.ref_fields), name)
        self.ref_fields.append(descriptor)
        return _RefField(descriptor, weak)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self._fields]

    def new_instance(self):
        obj = self.type_.__new__(self.type_)
        for dataclass_field in self._dataclass_fields:
            if dataclass_field.default is not MISSING:
                value = dataclass_field.default
            elif dataclass_field.default_factory is not MISSING:
                value = dataclass_field.default_factory()
            else:
                value = None
            object.__setattr__(obj, dataclass_field.name, value)
        return obj

    def write(self, writer, value):
        for field in self._fields:
            field.write(writer, value)

    def read_into(self, reader, obj):
        for field in self._fields:
            field.read(reader, obj)
        return obj

    def read(self, reader):
        return self.read_into(reader, self.new_instance())
