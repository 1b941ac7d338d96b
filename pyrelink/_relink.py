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

import logging
import os
from typing import Iterable, List, Union, TypeVar

from pyrelink.buffer import Buffer, COUNT_SIZE, FIELD_DESCRIPTOR_SIZE, IDENTITY_SIZE
from pyrelink.collection import ValueSequenceSerializer
from pyrelink.error import (
    RelinkError,
    RelinkIOError,
    RelinkInvalidDataError,
    StreamMismatchError,
    TypeUnregisteredError,
)
from pyrelink.identity import IdentityRegistry, LiveObjectMap
from pyrelink.ledger import ELEMENT_SLOT, FieldDescriptor, LedgerEntry, ReferenceLedger, SequenceSlot
from pyrelink.policy import DEFAULT_POLICY, ResolvePolicy, StrictResolvePolicy
from pyrelink.resolver import DeferredPatchResolver, ResolveReport

logger = logging.getLogger(__name__)

_LEDGER_ENTRY_SIZE = 2 * IDENTITY_SIZE + FIELD_DESCRIPTOR_SIZE

# An empty tag can't name a type, so it marks the start of the trailer.
_TRAILER_TAG = ""


class Relink:
    """
    Object graph serializer which restores pointers after the whole stream is read.

    Every graph object is written once as a record: its type tag, a
    session-scoped identity and its body. Pointer fields are written as ledger
    entries naming the owner, the target and the field, and are patched by a
    single resolve pass once the reader has built every object. Shared
    objects stay shared and cycles survive the round trip.

    Examples:
        >>> import pyrelink
        >>> from dataclasses import dataclass
        >>> from typing import List, Optional
        >>>
        >>> @dataclass(eq=False)
        ... class SceneNode:
        ...     name: str = ""
        ...     parent: Optional["SceneNode"] = pyrelink.field(ref=True, default=None)
        ...     children: List["SceneNode"] = pyrelink.field(ref=True, default_factory=list)
        >>>
        >>> relink = pyrelink.Relink()
        >>> relink.register(SceneNode, tag="Node")
        >>> root = SceneNode("root")
        >>> root.children.append(SceneNode("child", parent=root))
        >>> copy = relink.deserialize(relink.serialize(root))
        >>> copy.children[0].parent is copy
        True
    """

    __slots__ = (
        "strict",
        "follow_refs",
        "write_trailer",
        "policy",
        "type_resolver",
    )

    def __init__(
        self,
        strict: bool = True,
        follow_refs: bool = True,
        write_trailer: bool = True,
        policy: ResolvePolicy = None,
    ):
        """
        Initialize a Relink instance.

        Args:
            strict: Require type registration (default: True). When disabled,
                unregistered classes are written under a ``module#QualName`` tag
                and readers import the class named by such a tag. Only disable
                for trusted streams.

            follow_refs: Write the targets of pointer fields after their owner
                (default: True). When False, only the roots passed to
                `GraphWriter.write` are written, and pointers to anything else
                are left unset on read.

            write_trailer: Terminate streams with a trailer holding the record
                count and the root identities (default: True). Readers check the
                count, which catches hooks that read and write different fields.

            policy: Hooks for ledger entries the resolve pass can't patch.
                The ``RELINK_STRICT_RESOLVE`` environment variable forces
                `StrictResolvePolicy`.
        """
        self.strict = strict
        self.follow_refs = follow_refs
        self.write_trailer = write_trailer
        if _STRICT_RESOLVE_FORCIBLY and not isinstance(policy, StrictResolvePolicy):
            policy = StrictResolvePolicy()
        self.policy = policy or DEFAULT_POLICY
        if not strict:
            logger.warning(
                "Type registration is disabled, readers will import any class named by a stream. "
                "Only read streams from trusted sources."
            )
        from pyrelink._registry import TypeResolver

        self.type_resolver = TypeResolver(self)
        self.type_resolver.initialize()

    def register(
        self,
        cls: Union[type, TypeVar],
        *,
        tag: str = None,
        serializer=None,
    ):
        """
        Register a graph type under a tag.

        Args:
            cls: A dataclass, a class implementing ``serialize``/``deserialize``,
                or any class when `serializer` is given.
            tag: Text written before each record of the type. Defaults to the
                class name.
            serializer: Optional serializer class or instance for the type.

        Example:
            >>> relink = Relink()
            >>> relink.register(SceneNode, tag="Node")
            >>> relink.register(Light)
        """
        return self.type_resolver.register_type(cls, tag=tag, serializer=serializer)

    def register_serializer(self, cls: type, serializer):
        self.type_resolver.register_serializer(cls, serializer)

    def writer(self, sink=None) -> "GraphWriter":
        """Open a write session. Writes to an in-memory `Buffer` when no sink is given."""
        return GraphWriter(self, Buffer.allocate() if sink is None else sink)

    def reader(self, source) -> "GraphReader":
        return GraphReader(self, source)

    def dumps(self, *roots) -> bytes:
        """Write the closure of `roots` and return the stream bytes."""
        buffer = Buffer.allocate()
        with self.writer(buffer) as writer:
            writer.write_all(roots)
        return buffer.to_bytes()

    def loads(self, data: Union[Buffer, bytes]) -> List:
        """Read a whole stream, resolve it and return its roots."""
        with self.reader(data) as reader:
            reader.read_all()
        return reader.roots

    def serialize(self, obj) -> bytes:
        return self.dumps(obj)

    def deserialize(self, data: Union[Buffer, bytes]):
        roots = self.loads(data)
        return roots[0] if roots else None

    def save(self, path, *roots) -> int:
        """Write the closure of `roots` to the file at `path`, returns the record count."""
        with self.writer(path) as writer:
            writer.write_all(roots)
        return writer.written_count

    def load(self, path) -> List:
        """Read the stream stored at `path` and return its roots."""
        return self.loads(path)


class _Session:
    """Ownership of the stream behind one read or write pass."""

    def __init__(self, relink: Relink):
        self.relink = relink
        self._stream = None
        self._owns_stream = False
        self._finished = False
        self._released = False

    def _open(self, path, mode):
        try:
            self._stream = open(path, mode)
        except OSError as e:
            raise RelinkIOError(f"Can't open {path}: {e}") from e
        self._owns_stream = True

    def _check_open(self):
        if self._finished or self._released:
            raise RelinkError(f"{type(self).__name__} session is already finished")

    def _release(self):
        if self._released:
            return
        self._released = True
        stream = self._stream
        self._stream = None
        if stream is not None and self._owns_stream:
            try:
                stream.close()
            except OSError as e:
                raise RelinkIOError(f"Can't close {stream}: {e}") from e

    def close(self):
        """Release the stream without finishing the session."""
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None and not self._finished:
            self.finish()
        else:
            self._release()
        return False


class GraphWriter(_Session):
    """
    Write session of one object graph.

    Objects are written depth-first starting from each root. An object that
    has been written already is skipped, so every object appears in the
    stream at most once regardless of how many pointers lead to it.
    """

    def __init__(self, relink: Relink, sink):
        super().__init__(relink)
        self.identities = IdentityRegistry()
        self.ledger = ReferenceLedger()
        self._root_identities: List[int] = []
        self._discovered = []
        if isinstance(sink, Buffer):
            self.buffer = sink
        else:
            self.buffer = Buffer.allocate()
            if isinstance(sink, (str, bytes, os.PathLike)):
                self._open(sink, "wb")
            elif callable(getattr(sink, "write", None)):
                self._stream = sink
            else:
                raise TypeError(f"Can't write a graph stream to {sink!r}")
        logger.debug("Opened write session on %r", sink)

    @property
    def written_count(self) -> int:
        return self.identities.written_count

    def write(self, root):
        """Register `root` and write every object reachable from it."""
        self._check_open()
        if root is None:
            raise TypeError("A root can't be None")
        self._root_identities.append(self.identities.identity_of(root))
        stack = [root]
        while stack:
            obj = stack.pop()
            if self.identities.already_written(obj):
                continue
            discovered = self._write_record(obj)
            # keep the discovery order of the owner's pointers
            stack.extend(reversed(discovered))
        self._flush()

    def write_all(self, roots: Iterable):
        for root in roots:
            self.write(root)

    def _write_record(self, obj) -> list:
        typeinfo = self.relink.type_resolver.get_typeinfo(type(obj))
        if typeinfo.tag is None:
            raise TypeUnregisteredError(f"{type(obj)} is a value type and can't be written as a graph object")
        identity = self.identities.mark_written(obj)
        buffer = self.buffer
        buffer.write_text(typeinfo.tag)
        buffer.write_identity(identity)
        discovered = self._discovered = []
        typeinfo.serializer.write(self, obj)
        self._discovered = []
        return discovered

    def write_bool(self, value: bool):
        self.buffer.write_bool(value)

    def write_int8(self, value: int):
        self.buffer.write_int8(value)

    def write_int16(self, value: int):
        self.buffer.write_int16(value)

    def write_int32(self, value: int):
        self.buffer.write_int32(value)

    def write_int64(self, value: int):
        self.buffer.write_int64(value)

    def write_float32(self, value: float):
        self.buffer.write_float32(value)

    def write_float64(self, value: float):
        self.buffer.write_float64(value)

    def write_text(self, value: str):
        self.buffer.write_text(value)

    def write_reference(self, owner, field: Union[str, FieldDescriptor], target, weak: bool = False) -> LedgerEntry:
        """
        Write one ledger entry for the pointer `owner.<field> -> target`.

        The target is queued for writing unless it is None, the reference is
        weak, or the session doesn't follow references.
        """
        if not isinstance(field, FieldDescriptor):
            field = self._ref_field(owner, field)
        identities = self.identities
        entry = LedgerEntry(identities.identity_of(owner), identities.identity_of(target), field.index)
        self._append_entry(entry, target, weak)
        return entry

    def write_ref_sequence(self, seq, weak: bool = False):
        """Write a list of pointers: a count, then one ledger entry per slot."""
        seq = seq if seq is not None else []
        self.buffer.write_int32(len(seq))
        identities = self.identities
        for target in seq:
            entry = LedgerEntry(identities.new_identity(), identities.identity_of(target), ELEMENT_SLOT)
            self._append_entry(entry, target, weak)

    def _append_entry(self, entry: LedgerEntry, target, weak: bool):
        entry.write_to(self.buffer)
        self.ledger.append(entry)
        if target is not None and not weak and self.relink.follow_refs:
            self._discovered.append(target)

    def _ref_field(self, owner, name: str) -> FieldDescriptor:
        serializer = self.relink.type_resolver.get_serializer(type(owner))
        for descriptor in serializer.ref_fields:
            if descriptor.name == name:
                return descriptor
        raise TypeError(f"{type(owner)} has no reference field {name}")

    def write_value_sequence(self, seq, elem_type):
        serializer = self.relink.type_resolver.get_serializer(elem_type)
        ValueSequenceSerializer(self.relink, serializer).write(self, seq)

    def write_value(self, value, type_):
        self.relink.type_resolver.get_serializer(type_).write(self, value)

    def _flush(self):
        stream = self._stream
        if stream is None:
            return
        try:
            stream.write(self.buffer.to_bytes())
        except OSError as e:
            raise RelinkIOError(f"Can't write to {stream}: {e}") from e
        self.buffer.clear()

    def _write_trailer(self):
        buffer = self.buffer
        buffer.write_text(_TRAILER_TAG)
        buffer.write_int32(self.identities.written_count)
        buffer.write_int32(len(self._root_identities))
        for identity in self._root_identities:
            buffer.write_identity(identity)

    def finish(self) -> int:
        """Write the trailer, flush and release the sink. Returns the record count."""
        self._check_open()
        self._finished = True
        try:
            if self.relink.write_trailer:
                self._write_trailer()
            self._flush()
            if self._stream is not None:
                try:
                    self._stream.flush()
                except OSError as e:
                    raise RelinkIOError(f"Can't flush {self._stream}: {e}") from e
        finally:
            self._release()
        logger.debug(
            "Finished write session: %s objects, %s ledger entries, %s roots",
            self.identities.written_count,
            len(self.ledger),
            len(self._root_identities),
        )
        return self.identities.written_count


class GraphReader(_Session):
    """
    Read session of one object graph.

    Records are turned into live objects as they are read, with pointer
    fields left at their defaults. `finish` resolves every buffered ledger
    entry in one pass.
    """

    def __init__(self, relink: Relink, source):
        super().__init__(relink)
        self.live_objects = LiveObjectMap()
        self.ledger = ReferenceLedger()
        self.report: ResolveReport = None
        self._objects = []
        self._root_identities = None
        self._ended = False
        if isinstance(source, Buffer):
            self.buffer = source
        elif isinstance(source, (bytes, bytearray, memoryview)):
            self.buffer = Buffer(source)
        else:
            if isinstance(source, (str, os.PathLike)):
                self._open(source, "rb")
            elif callable(getattr(source, "read", None)):
                self._stream = source
            else:
                raise TypeError(f"Can't read a graph stream from {source!r}")
            try:
                self.buffer = Buffer(self._stream.read())
            except OSError as e:
                self._release()
                raise RelinkIOError(f"Can't read from {source!r}: {e}") from e
        logger.debug("Opened read session on %r", source)

    @property
    def objects(self) -> List:
        """Every object built from the stream, in stream order."""
        return list(self._objects)

    @property
    def roots(self) -> List:
        """Roots named by the trailer, or every object when the stream has none."""
        if self._root_identities is None:
            return self.objects
        return [self.live_objects.get(identity) for identity in self._root_identities]

    def read_object(self):
        """Read the next record and return its object, or None at the end of the stream."""
        self._check_open()
        if self._ended:
            return None
        buffer = self.buffer
        if buffer.exhausted:
            self._ended = True
            return None
        tag = buffer.read_text()
        if tag == _TRAILER_TAG:
            self._read_trailer()
            self._ended = True
            return None
        typeinfo = self.relink.type_resolver.get_typeinfo_by_tag(tag)
        serializer = typeinfo.serializer
        obj = serializer.new_instance()
        self.live_objects.register(buffer.read_identity(), obj)
        serializer.read_into(self, obj)
        self._objects.append(obj)
        return obj

    def read_all(self) -> List:
        objects = []
        while True:
            obj = self.read_object()
            if obj is None:
                return objects
            objects.append(obj)

    def _read_trailer(self):
        buffer = self.buffer
        object_count = buffer.read_int32()
        root_count = self._read_count(IDENTITY_SIZE)
        self._root_identities = [buffer.read_identity() for _ in range(root_count)]
        if object_count != len(self._objects):
            raise StreamMismatchError(
                f"Stream declares {object_count} objects but {len(self._objects)} were read, "
                "a type's serialize and deserialize don't match"
            )
        if not buffer.exhausted:
            raise RelinkInvalidDataError(f"{buffer.remaining} unexpected bytes after the stream trailer")

    def _read_count(self, item_size: int) -> int:
        count = self.buffer.read_int32()
        if count < 0 or count * item_size > self.buffer.remaining:
            raise RelinkInvalidDataError(
                f"Invalid count {count} at offset {self.buffer.reader_index - COUNT_SIZE}, "
                f"only {self.buffer.remaining} bytes remain"
            )
        return count

    def read_bool(self) -> bool:
        return self.buffer.read_bool()

    def read_int8(self) -> int:
        return self.buffer.read_int8()

    def read_int16(self) -> int:
        return self.buffer.read_int16()

    def read_int32(self) -> int:
        return self.buffer.read_int32()

    def read_int64(self) -> int:
        return self.buffer.read_int64()

    def read_float32(self) -> float:
        return self.buffer.read_float32()

    def read_float64(self) -> float:
        return self.buffer.read_float64()

    def read_text(self) -> str:
        return self.buffer.read_text()

    def read_reference(self) -> LedgerEntry:
        """Read one ledger entry. The field is patched by `finish`."""
        entry = LedgerEntry.read_from(self.buffer)
        self.ledger.append(entry)
        return entry

    def read_ref_sequence(self) -> list:
        """Pre-allocate a list of None slots, each bound to its slot identity."""
        count = self._read_count(_LEDGER_ENTRY_SIZE)
        seq = [None] * count
        for index in range(count):
            entry = self.read_reference()
            self.live_objects.register(entry.owner, SequenceSlot(seq, index))
        return seq

    def read_value_sequence(self, elem_type) -> list:
        serializer = self.relink.type_resolver.get_serializer(elem_type)
        return ValueSequenceSerializer(self.relink, serializer).read(self)

    def read_value(self, type_):
        return self.relink.type_resolver.get_serializer(type_).read(self)

    def finish(self) -> ResolveReport:
        """Release the source, then patch every buffered reference exactly once."""
        self._check_open()
        self._finished = True
        self._release()
        resolver = DeferredPatchResolver(
            self.live_objects,
            self.ledger,
            self.relink.type_resolver,
            self.relink.policy,
        )
        self.report = resolver.resolve()
        logger.debug("Finished read session: %s objects, %s", len(self._objects), self.report)
        return self.report


_STRICT_RESOLVE_FORCIBLY = os.getenv("RELINK_STRICT_RESOLVE", "0") in {
    "1",
    "true",
}
