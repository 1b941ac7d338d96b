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
import functools
import logging
from enum import Enum
from typing import Dict, TypeVar, Union

from pyrelink.error import TypeUnregisteredError, UnknownTypeTagError
from pyrelink.serializer import (
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
    DataClassSerializer,
    SerializableSerializer,
    PyArraySerializer,
    NDArraySerializer,
)
from pyrelink.type_util import is_subclass, load_class, qualified_class_name
from pyrelink.types import (
    int8,
    int16,
    int32,
    int64,
    float32,
    float64,
    _np_array_dtypes,
    _py_array_typecodes,
)

try:
    import numpy as np
except ImportError:
    np = None

logger = logging.getLogger(__name__)


class TypeInfo:
    """
    Dispatch table entry of one type.

    `tag` is written before every record of the type and selects the entry
    again on read; types only used as field values have no tag. The
    serializer is created on first use, after every type it mentions has had
    a chance to be registered.
    """

    __slots__ = ("cls", "tag", "serializer", "internal")

    def __init__(self, cls: type = None, tag: str = None, serializer: Serializer = None, internal: bool = False):
        self.cls = cls
        self.tag = tag
        self.serializer = serializer
        self.internal = internal

    def __repr__(self):
        return f"TypeInfo(cls={self.cls}, tag={self.tag!r}, serializer={self.serializer})"


class TypeResolver:
    __slots__ = (
        "relink",
        "require_registration",
        "_types_info",
        "_tag_to_typeinfo",
        "_building",
    )

    def __init__(self, relink):
        self.relink = relink
        self.require_registration = relink.strict
        self._types_info: Dict[type, TypeInfo] = dict()
        self._tag_to_typeinfo: Dict[str, TypeInfo] = dict()
        self._building = set()

    def initialize(self):
        register = functools.partial(self._register_type, internal=True)
        register(bool, serializer=BooleanSerializer)
        register(int8, serializer=ByteSerializer)
        register(int16, serializer=Int16Serializer)
        register(int32, serializer=Int32Serializer)
        register(int64, serializer=Int64Serializer)
        register(int, serializer=Int64Serializer)
        register(float32, serializer=Float32Serializer)
        register(float64, serializer=Float64Serializer)
        register(float, serializer=Float64Serializer)
        register(str, serializer=StringSerializer)
        register(bytes, serializer=BytesSerializer)
        for ftype, typecode in _py_array_typecodes.items():
            register(ftype, serializer=PyArraySerializer(self.relink, ftype, typecode))
        if np:
            for ftype, dtype in _np_array_dtypes.items():
                register(ftype, serializer=NDArraySerializer(self.relink, ftype, dtype))

    def register_type(
        self,
        cls: Union[type, TypeVar],
        *,
        tag: str = None,
        serializer=None,
    ):
        return self._register_type(cls, tag=tag or cls.__name__, serializer=serializer)

    def _register_type(
        self,
        cls: Union[type, TypeVar],
        *,
        tag: str = None,
        serializer=None,
        internal=False,
    ):
        """Register type with given tag. Internal types are field values only and get no tag."""
        if serializer is not None and not isinstance(serializer, Serializer):
            serializer = serializer(self.relink, cls)
        if cls in self._types_info:
            raise TypeError(f"{cls} registered already")
        if tag is not None:
            if not isinstance(tag, str) or not tag:
                raise TypeError(f"Type tag of {cls} should be a non-empty str, got {tag!r}")
            if tag in self._tag_to_typeinfo:
                raise TypeError(f"Tag {tag!r} of {cls} is already used by {self._tag_to_typeinfo[tag].cls}")
        typeinfo = TypeInfo(cls, tag, serializer, internal)
        self._types_info[cls] = typeinfo
        if tag is not None:
            self._tag_to_typeinfo[tag] = typeinfo
        return typeinfo

    def register_serializer(self, cls: Union[type, TypeVar], serializer):
        if cls not in self._types_info:
            raise TypeUnregisteredError(f"{cls} not registered")
        if not isinstance(serializer, Serializer):
            serializer = serializer(self.relink, cls)
        self._types_info[cls].serializer = serializer

    def get_serializer(self, cls: type):
        """
        Returns
        -------
            Returns or create serializer for the provided type
        """
        return self.get_typeinfo(cls).serializer

    def get_typeinfo(self, cls, create=True):
        type_info = self._types_info.get(cls)
        if type_info is not None:
            if type_info.serializer is None:
                self._set_serializer(type_info)
            return type_info
        elif not create:
            return None
        if is_subclass(cls, Enum):
            return self._register_type(cls, serializer=EnumSerializer)
        if self.require_registration:
            raise TypeUnregisteredError(f"{cls} not registered")
        logger.debug("Registering %s on first use", cls)
        typeinfo = self._register_type(cls, tag=qualified_class_name(cls))
        self._set_serializer(typeinfo)
        return typeinfo

    def get_typeinfo_by_tag(self, tag: str) -> TypeInfo:
        typeinfo = self._tag_to_typeinfo.get(tag)
        if typeinfo is None:
            typeinfo = self._load_tagged_type(tag)
        if typeinfo.serializer is None:
            self._set_serializer(typeinfo)
        return typeinfo

    def _load_tagged_type(self, tag: str) -> TypeInfo:
        if self.require_registration or "#" not in tag:
            raise UnknownTypeTagError(f"Unknown type tag {tag!r}, can't construct the object")
        try:
            cls = load_class(tag)
        except ImportError as e:
            raise UnknownTypeTagError(f"Unknown type tag {tag!r}, can't construct the object") from e
        logger.debug("Loaded %s for tag %s", cls, tag)
        return self._register_type(cls, tag=tag)

    def _set_serializer(self, typeinfo: TypeInfo):
        cls = typeinfo.cls
        if cls in self._building:
            raise TypeError(f"{cls} contains itself by value, declare the field with `pyrelink.field(ref=True)`")
        self._building.add(cls)
        try:
            typeinfo.serializer = self._create_serializer(cls)
        finally:
            self._building.discard(cls)

    def _create_serializer(self, cls):
        if callable(getattr(cls, "serialize", None)) and callable(getattr(cls, "deserialize", None)):
            return SerializableSerializer(self.relink, cls)
        if dataclasses.is_dataclass(cls):
            return DataClassSerializer(self.relink, cls)
        raise TypeError(f"{cls} is neither a dataclass nor implements serialize/deserialize, pass a serializer to register")
