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

import pytest

import pyrelink
from pyrelink import Relink, ResolvePolicy, StrictResolvePolicy
from pyrelink.error import UnresolvedReferenceError
from pyrelink.tests.scene import SceneNode, scene_relink


class RecordingPolicy(ResolvePolicy):
    """Policy that records every entry it is notified about."""

    def __init__(self):
        self.missing_targets = []
        self.missing_owners = []
        self.reports = []

    def on_missing_target(self, entry, **kwargs):
        self.missing_targets.append(entry)

    def on_missing_owner(self, entry, **kwargs):
        self.missing_owners.append(entry)

    def finalize(self, report, **kwargs):
        self.reports.append(report)


class Proxy(pyrelink.Serializable):
    """Writes a ledger entry on behalf of an object which is never written."""

    __relink_refs__ = ("target",)

    def __init__(self):
        self.delegate = None
        self.target = None

    def serialize(self, writer):
        writer.write_reference(self.delegate, "target", self)

    def deserialize(self, reader):
        reader.read_reference()


def _orphan_stream(relink):
    relink.register(Proxy)
    proxy = Proxy()
    proxy.delegate = Proxy()
    return relink.serialize(proxy)


def test_custom_policy_hooks():
    policy = RecordingPolicy()
    relink = scene_relink(policy=policy)
    relink.deserialize(relink.serialize(SceneNode("lonely")))
    (report,) = policy.reports
    # the null parent
    assert len(policy.missing_targets) == 1
    assert policy.missing_owners == []
    assert report.clean

    data = _orphan_stream(relink)
    proxy = relink.deserialize(data)
    assert proxy.target is None
    assert len(policy.missing_owners) == 1
    assert not policy.reports[-1].clean


def test_default_policy_warns(caplog):
    relink = Relink()
    data = _orphan_stream(relink)
    with caplog.at_level(logging.WARNING):
        proxy = relink.deserialize(data)
    assert isinstance(proxy, Proxy)
    assert "never read from the stream" in caplog.text


def test_strict_policy_escalates():
    relink = Relink(policy=StrictResolvePolicy())
    data = _orphan_stream(relink)
    with pytest.raises(UnresolvedReferenceError) as exc_info:
        relink.deserialize(data)
    report = exc_info.value.report
    assert len(report.orphaned) == 1
    assert report.patched == 0


def test_strict_policy_allows_dangling():
    relink = scene_relink(policy=StrictResolvePolicy(), follow_refs=False)
    parent = SceneNode("parent")
    child = parent.add_child(SceneNode("child"))
    assert relink.deserialize(relink.serialize(child)).parent is None


def test_strict_resolve_environment(monkeypatch):
    monkeypatch.setattr(pyrelink._relink, "_STRICT_RESOLVE_FORCIBLY", True)
    assert isinstance(Relink().policy, StrictResolvePolicy)
    assert isinstance(Relink(policy=RecordingPolicy()).policy, StrictResolvePolicy)
    monkeypatch.setattr(pyrelink._relink, "_STRICT_RESOLVE_FORCIBLY", False)
    assert type(Relink().policy) is ResolvePolicy
