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
from typing import TypeVar

try:
    import numpy as np

    ndarray = np.ndarray
except ImportError:
    np, ndarray = None, None


# Field type markers. Annotate dataclass fields with these to pick the
# fixed width written to the stream; plain `int`/`float` map to 64 bits.
int8 = TypeVar("int8", bound=int)
int16 = TypeVar("int16", bound=int)
int32 = TypeVar("int32", bound=int)
int64 = TypeVar("int64", bound=int)
float32 = TypeVar("float32", bound=float)
float64 = TypeVar("float64", bound=float)

int16_array = TypeVar("int16_array", bound=array.ArrayType)
int32_array = TypeVar("int32_array", bound=array.ArrayType)
int64_array = TypeVar("int64_array", bound=array.ArrayType)
float32_array = TypeVar("float32_array", bound=array.ArrayType)
float64_array = TypeVar("float64_array", bound=array.ArrayType)

bool_ndarray = TypeVar("bool_ndarray", bound=ndarray)
int16_ndarray = TypeVar("int16_ndarray", bound=ndarray)
int32_ndarray = TypeVar("int32_ndarray", bound=ndarray)
int64_ndarray = TypeVar("int64_ndarray", bound=ndarray)
float32_ndarray = TypeVar("float32_ndarray", bound=ndarray)
float64_ndarray = TypeVar("float64_ndarray", bound=ndarray)

# array.array typecodes with a fixed item size on every platform.
_py_array_typecodes = {
    int16_array: "h",
    int32_array: "i",
    int64_array: "q",
    float32_array: "f",
    float64_array: "d",
}

_np_array_dtypes = {
    bool_ndarray: "bool",
    int16_ndarray: "int16",
    int32_ndarray: "int32",
    int64_ndarray: "int64",
    float32_ndarray: "float32",
    float64_ndarray: "float64",
}
