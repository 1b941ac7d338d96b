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

"""
Sequence serializers.

A sequence field is written under one of two fixed contracts:

* owned-value sequence: ``count`` then every element body inline. Elements
  have no identity and can't be the target of a reference.
* reference sequence: ``count`` then one ledger entry per slot. The slot is
  the entry's owner; the element itself is written as its own record
  elsewhere in the stream, or not at all, in which case the slot stays None.
"""

from pyrelink._serializer import Serializer


class ValueSequenceSerializer(Serializer):
    __slots__ = ("elem_serializer",)

    def __init__(self, relink, elem_serializer: Serializer):
        super().__init__(relink, list)
        if elem_serializer.has_references:
            raise TypeError(
                f"{elem_serializer.type_} has reference fields and can't be an owned sequence element, "
                "declare the field with `pyrelink.field(ref=True)` instead"
            )
        self.elem_serializer = elem_serializer

    def write(self, writer, value):
        writer.buffer.write_int32(len(value))
        elem_serializer = self.elem_serializer
        for elem in value:
            elem_serializer.write(writer, elem)

    def read(self, reader):
        count = reader.buffer.read_int32()
        elem_serializer = self.elem_serializer
        return [elem_serializer.read(reader) for _ in range(count)]


class RefSequenceSerializer(Serializer):
    __slots__ = ("weak",)

    def __init__(self, relink, weak: bool = False):
        super().__init__(relink, list)
        self.weak = weak

    def write(self, writer, value):
        writer.write_ref_sequence(value, weak=self.weak)

    def read(self, reader):
        return reader.read_ref_sequence()
