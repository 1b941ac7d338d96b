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
from typing import List

from pyrelink.identity import LiveObjectMap
from pyrelink.ledger import ELEMENT_SLOT, SLOT_DESCRIPTOR, LedgerEntry, ReferenceLedger, SequenceSlot
from pyrelink.policy import DEFAULT_POLICY, ResolvePolicy

logger = logging.getLogger(__name__)


class ResolveReport:
    __slots__ = ("patched", "dangling", "orphaned", "invalid")

    def __init__(self):
        self.patched = 0
        self.dangling: List[LedgerEntry] = []
        self.orphaned: List[LedgerEntry] = []
        self.invalid: List[LedgerEntry] = []

    @property
    def total(self) -> int:
        return self.patched + len(self.dangling) + len(self.orphaned) + len(self.invalid)

    @property
    def clean(self) -> bool:
        return not self.orphaned and not self.invalid

    def __repr__(self):
        return (
            f"ResolveReport(patched={self.patched}, dangling={len(self.dangling)}, "
            f"orphaned={len(self.orphaned)}, invalid={len(self.invalid)})"
        )


class DeferredPatchResolver:
    """
    Turns buffered ledger entries into field writes.

    Runs once per read session, after the entire stream has been consumed,
    so every object the stream mentions is already live. One linear walk over
    the ledger, no recursion and no further I/O.
    """

    __slots__ = ("live_objects", "ledger", "type_resolver", "policy")

    def __init__(
        self,
        live_objects: LiveObjectMap,
        ledger: ReferenceLedger,
        type_resolver,
        policy: ResolvePolicy = None,
    ):
        self.live_objects = live_objects
        self.ledger = ledger
        self.type_resolver = type_resolver
        self.policy = policy or DEFAULT_POLICY

    def resolve(self) -> ResolveReport:
        report = ResolveReport()
        live_objects = self.live_objects
        policy = self.policy
        for entry in self.ledger:
            owner = live_objects.get(entry.owner)
            if owner is None:
                report.orphaned.append(entry)
                policy.on_missing_owner(entry)
                continue
            descriptor = self._descriptor_for(owner, entry.field)
            if descriptor is None:
                report.invalid.append(entry)
                policy.on_invalid_field(entry, owner)
                continue
            target = live_objects.get(entry.target)
            if target is None or isinstance(target, SequenceSlot):
                report.dangling.append(entry)
                policy.on_missing_target(entry)
                continue
            descriptor.assign(owner, target)
            report.patched += 1
        logger.debug("Resolved %s ledger entries: %s", len(self.ledger), report)
        policy.finalize(report)
        return report

    def _descriptor_for(self, owner, field: int):
        if isinstance(owner, SequenceSlot):
            return SLOT_DESCRIPTOR if field == ELEMENT_SLOT else None
        if field < 0:
            return None
        typeinfo = self.type_resolver.get_typeinfo(type(owner), create=False)
        if typeinfo is None or typeinfo.serializer is None:
            return None
        ref_fields = typeinfo.serializer.ref_fields
        if field >= len(ref_fields):
            return None
        return ref_fields[field]
