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
Reference ledger: one entry per pointer-typed field traversal.

An entry names the owner and target by identity and the patched field by a
`FieldDescriptor` index. Entries are written in place of the pointer value
and, on read, buffered until the whole stream is consumed.
"""

from typing import Callable, List, NamedTuple, Optional

from pyrelink.buffer import Buffer

# Field index of a reference-sequence slot. The owner of such an entry is
# the slot itself, not the object holding the sequence.
ELEMENT_SLOT = -1


class LedgerEntry(NamedTuple):
    owner: int
    target: int
    field: int

    def write_to(self, buffer: Buffer):
        buffer.write_identity(self.owner)
        buffer.write_identity(self.target)
        buffer.write_int32(self.field)

    @classmethod
    def read_from(cls, buffer: Buffer) -> "LedgerEntry":
        owner = buffer.read_identity()
        target = buffer.read_identity()
        field = buffer.read_int32()
        return cls(owner, target, field)


class FieldDescriptor:
    """
    Names one pointer-typed field of an owner type.

    `index` is what goes on the wire; `assign` performs the patch through the
    attribute (or a custom setter), never through object layout.
    """

    __slots__ = ("index", "name", "setter")

    def __init__(self, index: int, name: str, setter: Optional[Callable] = None):
        self.index = index
        self.name = name
        self.setter = setter

    def assign(self, owner, target):
        if self.setter is not None:
            self.setter(owner, target)
        else:
            object.__setattr__(owner, self.name, target)

    def __repr__(self):
        return f"FieldDescriptor(index={self.index}, name={self.name!r})"


class SequenceSlot:
    """Live handle of one pre-allocated reference-sequence slot."""

    __slots__ = ("sequence", "index")

    def __init__(self, sequence: list, index: int):
        self.sequence = sequence
        self.index = index

    def __repr__(self):
        return f"SequenceSlot(index={self.index})"


def _assign_slot(slot: SequenceSlot, target):
    slot.sequence[slot.index] = target


SLOT_DESCRIPTOR = FieldDescriptor(ELEMENT_SLOT, "[]", setter=_assign_slot)


class ReferenceLedger:
    """Append-only list of ledger entries for one session."""

    __slots__ = ("_entries",)

    def __init__(self):
        self._entries: List[LedgerEntry] = []

    def append(self, entry: LedgerEntry):
        self._entries.append(entry)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, index):
        return self._entries[index]
