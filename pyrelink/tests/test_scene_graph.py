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


import pytest

from pyrelink.tests.scene import (
    HandLight,
    HandNode,
    Light,
    Property,
    SceneNode,
    hand_relink,
    scene_relink,
)

MODELS = [
    pytest.param(scene_relink, SceneNode, Light, id="dataclass"),
    pytest.param(hand_relink, HandNode, HandLight, id="serializable"),
]


def ser_de(relink, *roots):
    return relink.loads(relink.dumps(*roots))


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_node_and_light(make_relink, node_cls, light_cls):
    relink = make_relink()
    b = light_cls("Node 2")
    b.radius = 35.0
    a = b.add_child(node_cls("Node 1"))
    assert a.parent is b
    (b2,) = ser_de(relink, b)
    assert type(b2) is light_cls
    assert b2.name == "Node 2"
    assert b2.radius == 35.0
    assert len(b2.children) == 1
    a2 = b2.children[0]
    assert type(a2) is node_cls
    assert a2.name == "Node 1"
    assert a2.parent is b2
    assert b2.parent is None


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_acyclic_round_trip(make_relink, node_cls, light_cls):
    relink = make_relink()
    root = node_cls("root")
    root.properties = [Property("depth", 0), Property("visible", 1)]
    for i in range(3):
        child = node_cls(f"child{i}")
        child.properties = [Property("depth", 1)]
        root.children.append(child)
        for j in range(2):
            child.children.append(light_cls(f"leaf{i}.{j}"))
    root2 = relink.deserialize(relink.serialize(root))
    assert root2.name == "root"
    assert root2.properties == [Property("depth", 0), Property("visible", 1)]
    assert [c.name for c in root2.children] == ["child0", "child1", "child2"]
    for i, child in enumerate(root2.children):
        assert child.properties == [Property("depth", 1)]
        assert [leaf.name for leaf in child.children] == [f"leaf{i}.0", f"leaf{i}.1"]
        assert all(type(leaf) is light_cls for leaf in child.children)
        # no parent pointers were set on the source graph
        assert child.parent is None


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_cycle(make_relink, node_cls, light_cls):
    relink = make_relink()
    a, b = node_cls("a"), node_cls("b")
    a.parent = b
    b.parent = a
    data = relink.dumps(a)
    with relink.reader(data) as reader:
        objects = reader.read_all()
    assert len(objects) == 2
    a2, b2 = reader.roots[0], objects[1]
    assert a2.name == "a"
    assert a2.parent is b2
    assert b2.parent is a2
    assert reader.report.patched == 2


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_self_reference(make_relink, node_cls, light_cls):
    relink = make_relink()
    node = node_cls("self")
    node.parent = node
    node.children.append(node)
    node2 = relink.deserialize(relink.serialize(node))
    assert node2.parent is node2
    assert node2.children[0] is node2


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_shared_object_written_once(make_relink, node_cls, light_cls):
    relink = make_relink()
    shared = light_cls("shared")
    left, right = node_cls("left"), node_cls("right")
    left.children.append(shared)
    right.children.append(shared)
    right.parent = shared
    with relink.writer() as writer:
        writer.write_all([left, right, shared])
    assert writer.written_count == 3
    with relink.reader(writer.buffer) as reader:
        reader.read_all()
    assert len(reader.objects) == 3
    left2, right2, shared2 = reader.roots
    assert left2.children[0] is shared2
    assert right2.children[0] is shared2
    assert right2.parent is shared2


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_dangling_reference(make_relink, node_cls, light_cls):
    relink = make_relink(follow_refs=False)
    parent = node_cls("parent")
    child = parent.add_child(node_cls("child"))
    (child2,) = ser_de(relink, child)
    assert child2.name == "child"
    assert child2.parent is None
    with relink.reader(relink.dumps(parent)) as reader:
        (parent2,) = reader.read_all()
    assert parent2.children == [None]
    # the unwritten child and the null parent of `parent`
    assert len(reader.report.dangling) == 2
    assert reader.report.clean


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_explicit_roots_without_following(make_relink, node_cls, light_cls):
    relink = make_relink(follow_refs=False)
    parent = node_cls("parent")
    child = parent.add_child(node_cls("child"))
    parent2, child2 = ser_de(relink, parent, child)
    assert parent2.children == [child2]
    assert child2.parent is parent2


@pytest.mark.parametrize("make_relink,node_cls,light_cls", MODELS)
def test_none_slot(make_relink, node_cls, light_cls):
    relink = make_relink()
    node = node_cls("node")
    node.children = [None, node_cls("child"), None]
    node2 = relink.deserialize(relink.serialize(node))
    assert node2.children[0] is None
    assert node2.children[1].name == "child"
    assert node2.children[2] is None


def test_parent_fields_come_first():
    relink = scene_relink()
    light = Light("lamp", radius=2.0)
    with relink.writer() as writer:
        writer.write(light)
    buffer = writer.buffer
    assert buffer.read_text() == "Light"
    buffer.read_identity()
    assert buffer.read_text() == "lamp"
