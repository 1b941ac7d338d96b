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

import importlib
import typing
from abc import ABC, abstractmethod
from typing import TypeVar


def is_subclass(from_type, to_type):
    try:
        return issubclass(from_type, to_type)
    except TypeError:
        return False


class TypeVisitor(ABC):
    @abstractmethod
    def visit_list(self, field_name, elem_type, types_path=None):
        pass

    @abstractmethod
    def visit_customized(self, field_name, type_, types_path=None):
        pass

    @abstractmethod
    def visit_other(self, field_name, type_, types_path=None):
        pass


def is_optional_type(type_):
    origin = typing.get_origin(type_)
    if origin is typing.Union:
        return type(None) in typing.get_args(type_)
    return False


def unwrap_optional(type_):
    if not is_optional_type(type_):
        return type_, False
    non_none_types = [arg for arg in typing.get_args(type_) if arg is not type(None)]
    if len(non_none_types) == 1:
        return non_none_types[0], True
    return typing.Union[tuple(non_none_types)], True


def is_list_type(type_):
    origin = typing.get_origin(type_) or type_
    return origin is list

def infer_field(field_name, type_, visitor: TypeVisitor, types_path=None):
    types_path = list(types_path or [])
    types_path.append(type_)
    origin = typing.get_origin(type_) or type_
    args = typing.get_args(type_)
    if args:
        if origin is list:
            return visitor.visit_list(field_name, args[0], types_path=types_path)
        elif origin is typing.Union:
            unwrapped, is_optional = unwrap_optional(type_)
            if is_optional and unwrapped is not type_:
                return infer_field(field_name, unwrapped, visitor, types_path)
            raise TypeError(f"Field {field_name}: union type {type_} is not supported")
        else:
            raise TypeError(f"Field {field_name}: collection types should be {list} instead of {type_}")
    elif origin is list:
        raise TypeError(f"Field {field_name}: list fields need an element type, e.g. List[int32]")
    else:
        if isinstance(origin, TypeVar) or not hasattr(origin, "__annotations__"):
            return visitor.visit_other(field_name, type_, types_path=types_path)
        else:
            return visitor.visit_customized(field_name, type_, types_path=types_path)


def qualified_class_name(cls):
    if isinstance(cls, TypeVar):
        return cls.__module__ + "#" + cls.__name__
    else:
        return cls.__module__ + "#" + cls.__qualname__


def load_class(classname: str):
    mod_name, cls_name = classname.rsplit("#", 1)
    try:
        mod = importlib.import_module(mod_name)
    except ImportError as ex:
        raise ImportError(f"Can't import module {mod_name}") from ex
    try:
        classes = cls_name.split(".")
        cls = getattr(mod, classes.pop(0))
        while classes:
            cls = getattr(cls, classes.pop(0))
        return cls
    except AttributeError as ex:
        raise ImportError(f"Can't import class {cls_name} from module {mod_name}") from ex
