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

from typing import Dict, Iterator, Tuple

from pyrelink.error import RelinkInvalidRefError

NULL_IDENTITY = 0


class IdentityRegistry:
    """
    Write-side identity table of one session.

    Hands out small integer identities on first sight of an object. The
    registry keeps every identified object alive until the session ends, so
    the `id()` it is keyed on can't be reused by another object mid-pass.
    """

    __slots__ = ("_identities", "_written", "_next_identity")

    def __init__(self):
        # id(obj) -> (identity, obj)
        self._identities: Dict[int, Tuple[int, object]] = {}
        self._written = set()
        self._next_identity = NULL_IDENTITY + 1

    def new_identity(self) -> int:
        """Mint an identity which names no object, e.g. a sequence slot."""
        identity = self._next_identity
        self._next_identity = identity + 1
        return identity

    def identity_of(self, obj) -> int:
        if obj is None:
            return NULL_IDENTITY
        entry = self._identities.get(id(obj))
        if entry is not None:
            return entry[0]
        identity = self.new_identity()
        self._identities[id(obj)] = (identity, obj)
        return identity

    def already_written(self, obj) -> bool:
        return id(obj) in self._written

    def mark_written(self, obj) -> int:
        identity = self.identity_of(obj)
        self._written.add(id(obj))
        return identity

    @property
    def written_count(self) -> int:
        return len(self._written)

    def reset(self):
        self._identities.clear()
        self._written.clear()
        self._next_identity = NULL_IDENTITY + 1


class LiveObjectMap:
    """Read-side map from stream identity to the live handle built for it."""

    __slots__ = ("_objects",)

    def __init__(self):
        self._objects: Dict[int, object] = {}

    def register(self, identity: int, handle):
        if identity == NULL_IDENTITY:
            raise RelinkInvalidRefError("The null identity can't be bound to an object")
        if identity in self._objects:
            raise RelinkInvalidRefError(f"Identity {identity} is bound twice in one stream")
        self._objects[identity] = handle

    def get(self, identity: int):
        return self._objects.get(identity)

    def __contains__(self, identity: int) -> bool:
        return identity in self._objects

    def __len__(self):
        return len(self._objects)

    def __iter__(self) -> Iterator[int]:
        return iter(self._objects)
