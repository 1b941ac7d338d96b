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
Field metadata support for pyrelink serialization.

This module provides the `field()` function to mark dataclass fields as
pointers into the object graph.

Example:
    @dataclass(eq=False)
    class SceneNode:
        name: str = ""
        parent: Optional["SceneNode"] = pyrelink.field(ref=True, default=None)       # one ledger entry
        children: List["SceneNode"] = pyrelink.field(ref=True, default_factory=list) # reference sequence
        owner: Optional["Scene"] = pyrelink.field(ref=True, weak=True, default=None) # patched, not followed
        properties: List[Property] = dataclasses.field(default_factory=list)        # owned values
        _cache: dict = pyrelink.field(ignore=True, default_factory=dict)             # not serialized
"""

import dataclasses
from dataclasses import MISSING
from typing import Any, Callable, Mapping, Optional


# Key used to store pyrelink metadata in field.metadata
RELINK_FIELD_METADATA_KEY = "__relink__"


@dataclasses.dataclass(frozen=True)
class RelinkFieldMeta:
    """
    pyrelink field metadata extracted from field.metadata.

    Attributes:
        ref: The field holds a pointer (or a list of pointers) to graph objects.
        weak: The writer records the pointer but doesn't follow it to write the
            target. Requires ref.
        ignore: Whether to ignore this field during serialization.
    """

    ref: bool = False
    weak: bool = False
    ignore: bool = False


DEFAULT_FIELD_META = RelinkFieldMeta()


def field(
    *,
    ref: bool = False,
    weak: bool = False,
    ignore: bool = False,
    # Standard dataclass.field() options (passthrough)
    default: Any = MISSING,
    default_factory: Optional[Callable[[], Any]] = MISSING,
    init: bool = True,
    repr: bool = True,
    hash: Optional[bool] = None,
    compare: bool = True,
    metadata: Optional[Mapping[str, Any]] = None,
    **kwargs,
) -> Any:
    """
    Create a dataclass field with pyrelink-specific serialization metadata.

    Args:
        ref: Whether the field points into the object graph.
            - False (default): the value is owned and written inline.
            - True on ``T`` / ``Optional[T]``: one ledger entry, patched after
              the whole stream is read.
            - True on ``List[T]``: a reference sequence, one ledger entry per slot.

        weak: Record the pointer without following it. The target is only
            present after reading if it was written through another path or as
            a root. Requires ``ref=True``.

        ignore: Exclude the field from serialization. It is reset to its
            default on read.

        default, default_factory, init, repr, hash, compare, metadata:
            Standard dataclass.field() parameters, passed through.

        **kwargs: Additional arguments forwarded to dataclasses.field().

    Returns:
        A dataclass field descriptor with pyrelink metadata attached.
    """
    if weak and not ref:
        raise ValueError("weak requires ref=True")
    if ignore and ref:
        raise ValueError("ignore and ref can't be set at the same time")

    relink_meta = RelinkFieldMeta(ref=ref, weak=weak, ignore=ignore)

    combined_metadata = dict(metadata) if metadata else {}
    combined_metadata[RELINK_FIELD_METADATA_KEY] = relink_meta

    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        init=init,
        repr=repr,
        hash=hash,
        compare=compare,
        metadata=combined_metadata,
        **kwargs,
    )


def extract_field_meta(dataclass_field: dataclasses.Field) -> RelinkFieldMeta:
    """Return the field's RelinkFieldMeta, or the default one when it has none."""
    if dataclass_field.metadata is None:
        return DEFAULT_FIELD_META
    return dataclass_field.metadata.get(RELINK_FIELD_METADATA_KEY, DEFAULT_FIELD_META)
