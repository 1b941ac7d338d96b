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


from pyrelink._relink import (
    Relink,
    GraphWriter,
    GraphReader,
)
from pyrelink._registry import TypeInfo, TypeResolver  # noqa: F401 # pylint: disable=unused-import
from pyrelink.serializer import (  # noqa: F401 # pylint: disable=unused-import
    Serializer,
    Serializable,
    SerializableSerializer,
    BooleanSerializer,
    ByteSerializer,
    Int16Serializer,
    Int32Serializer,
    Int64Serializer,
    Float32Serializer,
    Float64Serializer,
    StringSerializer,
    BytesSerializer,
    EnumSerializer,
    NullableSerializer,
    ValueSequenceSerializer,
    RefSequenceSerializer,
    PyArraySerializer,
    NDArraySerializer,
)
from pyrelink.struct import DataClassSerializer
from pyrelink.field import field  # noqa: F401 # pylint: disable=unused-import
from pyrelink.types import (  # noqa: F401 # pylint: disable=unused-import
    int8,
    int16,
    int32,
    int64,
    float32,
    float64,
    int16_array,
    int32_array,
    int64_array,
    float32_array,
    float64_array,
    bool_ndarray,
    int16_ndarray,
    int32_ndarray,
    int64_ndarray,
    float32_ndarray,
    float64_ndarray,
)
from pyrelink.identity import IdentityRegistry, LiveObjectMap, NULL_IDENTITY  # noqa: F401
from pyrelink.ledger import (  # noqa: F401 # pylint: disable=unused-import
    ELEMENT_SLOT,
    FieldDescriptor,
    LedgerEntry,
    ReferenceLedger,
    SequenceSlot,
)
from pyrelink.resolver import DeferredPatchResolver, ResolveReport  # noqa: F401
from pyrelink.policy import ResolvePolicy, StrictResolvePolicy  # noqa: F401 # pylint: disable=unused-import
from pyrelink.buffer import Buffer  # noqa: F401 # pylint: disable=unused-import
from pyrelink.error import (  # noqa: F401 # pylint: disable=unused-import
    RelinkError,
    RelinkIOError,
    RelinkBufferOutOfBoundError,
    RelinkEncodeError,
    RelinkInvalidDataError,
    RelinkInvalidRefError,
    UnknownTypeTagError,
    TypeUnregisteredError,
    StreamMismatchError,
    UnresolvedReferenceError,
)

__version__ = "0.1.0.dev"

__all__ = [
    # Sessions
    "Relink",
    "GraphWriter",
    "GraphReader",
    "TypeInfo",
    "Buffer",
    "ResolvePolicy",
    "StrictResolvePolicy",
    "ResolveReport",
    # Graph types
    "field",
    "Serializable",
    "Serializer",
    "DataClassSerializer",
    # Type markers
    "int8",
    "int16",
    "int32",
    "int64",
    "float32",
    "float64",
    "int16_array",
    "int32_array",
    "int64_array",
    "float32_array",
    "float64_array",
    "bool_ndarray",
    "int16_ndarray",
    "int32_ndarray",
    "int64_ndarray",
    "float32_ndarray",
    "float64_ndarray",
    # Errors
    "RelinkError",
    "RelinkIOError",
    "RelinkBufferOutOfBoundError",
    "RelinkEncodeError",
    "RelinkInvalidDataError",
    "RelinkInvalidRefError",
    "UnknownTypeTagError",
    "TypeUnregisteredError",
    "StreamMismatchError",
    "UnresolvedReferenceError",
    # Version
    "__version__",
]
