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

from pyrelink.error import UnresolvedReferenceError

logger = logging.getLogger(__name__)


class ResolvePolicy:
    """Resolve Policy for pyrelink.

    The resolve pass runs once, after a stream has been consumed, and patches
    every buffered ledger entry whose owner and target are both live. Entries
    that can't be patched are handed to the hooks below. The resolve loop
    itself never stops early: hooks are notified per entry, and `finalize`
    sees the aggregate report once every entry has been visited.

    Hook Categories
    ---------------
    1. **Per-entry hooks**
       - ``on_missing_target``: the target identity is null or was never
         materialised. This is a legitimate optional reference; the field
         keeps its default value.
       - ``on_missing_owner``: no live object was built for the owner
         identity. This points at a writer/reader mismatch.
       - ``on_invalid_field``: the owner exists, but its type has no
         reference field with the entry's index.

    2. **Aggregate hook**
       - ``finalize``: called with the `ResolveReport`. Raise here to turn
         skipped patches into a hard error.

    Usage Example
    -------------
    >>> class CountingPolicy(ResolvePolicy):
    ...     def __init__(self):
    ...         self.missing = 0
    ...
    ...     def on_missing_owner(self, entry, **kwargs):
    ...         self.missing += 1
    >>>
    >>> relink = Relink(policy=CountingPolicy())

    All hooks take ``**kwargs`` so new context can be passed later without
    breaking subclasses.
    """

    def on_missing_target(self, entry, **kwargs):
        return None

    def on_missing_owner(self, entry, **kwargs):
        logger.warning(
            "Skip patching field %s: owner identity %s was never read from the stream",
            entry.field,
            entry.owner,
        )

    def on_invalid_field(self, entry, owner, **kwargs):
        logger.warning(
            "Skip patching field %s of %s: type has no reference field with that index",
            entry.field,
            type(owner).__name__,
        )

    def finalize(self, report, **kwargs):
        return None


class StrictResolvePolicy(ResolvePolicy):
    """Escalate orphaned or invalid ledger entries to `UnresolvedReferenceError`."""

    def on_missing_owner(self, entry, **kwargs):
        return None

    def on_invalid_field(self, entry, owner, **kwargs):
        return None

    def finalize(self, report, **kwargs):
        if report.orphaned or report.invalid:
            raise UnresolvedReferenceError(
                f"{len(report.orphaned)} ledger entries have no live owner and "
                f"{len(report.invalid)} name an unknown field; the stream doesn't match the registered types",
                report=report,
            )


DEFAULT_POLICY = ResolvePolicy()
