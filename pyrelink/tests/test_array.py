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


import array
from dataclasses import dataclass, field
from typing import Optional

import pytest

import pyrelink
from pyrelink import Relink
from pyrelink.tests.core import require_numpy

try:
    import numpy as np
except ImportError:
    np = None


@dataclass(eq=False)
class Mesh:
    indices: pyrelink.int32_array = field(default_factory=lambda: array.array("i"))
    weights: pyrelink.float64_array = field(default_factory=lambda: array.array("d"))
    normals: Optional[pyrelink.float32_array] = None


def test_py_array():
    relink = Relink()
    relink.register(Mesh)
    mesh = Mesh(
        indices=array.array("i", [0, 1, 2, -1]),
        weights=array.array("d", [0.5, 0.25]),
    )
    mesh2 = relink.deserialize(relink.serialize(mesh))
    assert mesh2.indices == array.array("i", [0, 1, 2, -1])
    assert mesh2.weights == array.array("d", [0.5, 0.25])
    assert mesh2.normals is None
    mesh.normals = array.array("f", [1.0, 0.0])
    assert relink.deserialize(relink.serialize(mesh)).normals == array.array("f", [1.0, 0.0])


def test_py_array_byte_count():
    relink = Relink()
    writer = relink.writer()
    writer.write_value(array.array("h", [1, 2, 3]), pyrelink.int16_array)
    assert writer.buffer.size == 4 + 3 * 2
    reader = relink.reader(writer.buffer)
    assert reader.read_value(pyrelink.int16_array) == array.array("h", [1, 2, 3])


def test_py_array_converts_typecode():
    relink = Relink()
    writer = relink.writer()
    writer.write_value(array.array("b", [1, 2]), pyrelink.int64_array)
    reader = relink.reader(writer.buffer)
    assert reader.read_value(pyrelink.int64_array) == array.array("q", [1, 2])


if np is not None:

    @dataclass(eq=False)
    class Samples:
        values: pyrelink.float32_ndarray = None
        mask: pyrelink.bool_ndarray = None
        ids: Optional[pyrelink.int64_ndarray] = None


@require_numpy
def test_ndarray():
    relink = Relink()
    relink.register(Samples)
    samples = Samples(
        values=np.array([0.5, 1.5, -2.0], dtype=np.float32),
        mask=np.array([True, False, True]),
        ids=np.arange(4, dtype=np.int64),
    )
    samples2 = relink.deserialize(relink.serialize(samples))
    np.testing.assert_array_equal(samples2.values, samples.values)
    assert samples2.values.dtype == np.float32
    np.testing.assert_array_equal(samples2.mask, samples.mask)
    np.testing.assert_array_equal(samples2.ids, samples.ids)


@require_numpy
def test_ndarray_must_be_one_dimensional():
    relink = Relink()
    writer = relink.writer()
    with pytest.raises(ValueError):
        writer.write_value(np.zeros((2, 2), dtype=np.int32), pyrelink.int32_ndarray)
