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
Sequential byte buffer used as the scalar codec of a graph stream.

Every scalar is written with the platform's native byte order and the
standard `struct` size of its format, so a value always occupies the same
number of bytes. Text is written as UTF-8 code units followed by a single
``0x00`` terminator and must not itself contain that byte.
"""

import struct
from typing import Union

from pyrelink.error import RelinkBufferOutOfBoundError, RelinkEncodeError

TEXT_TERMINATOR = 0

_BOOL = struct.Struct("=?")
_INT8 = struct.Struct("=b")
_INT16 = struct.Struct("=h")
_INT32 = struct.Struct("=i")
_INT64 = struct.Struct("=q")
_FLOAT32 = struct.Struct("=f")
_FLOAT64 = struct.Struct("=d")

IDENTITY_SIZE = _INT64.size
FIELD_DESCRIPTOR_SIZE = _INT32.size
COUNT_SIZE = _INT32.size


class Buffer:
    __slots__ = ("_data", "reader_index")

    def __init__(self, data: Union[bytes, bytearray, memoryview] = b""):
        self._data = bytearray(data)
        self.reader_index = 0

    @classmethod
    def allocate(cls) -> "Buffer":
        return cls()

    @property
    def writer_index(self) -> int:
        return len(self._data)

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def remaining(self) -> int:
        return len(self._data) - self.reader_index

    @property
    def exhausted(self) -> bool:
        return self.reader_index >= len(self._data)

    def to_bytes(self, offset: int = 0, length: int = None) -> bytes:
        if length is None:
            return bytes(self._data[offset:])
        return bytes(self._data[offset : offset + length])

    def clear(self):
        """Drop written bytes, used after flushing them to a stream."""
        del self._data[:]
        self.reader_index = 0

    def __len__(self):
        return len(self._data)

    def __repr__(self):
        return f"Buffer(size={len(self._data)}, reader_index={self.reader_index})"

    def _pack(self, fmt: struct.Struct, value):
        try:
            self._data += fmt.pack(value)
        except struct.error as e:
            raise OverflowError(f"{value!r} can't be written with format '{fmt.format}'") from e

    def _unpack(self, fmt: struct.Struct):
        reader_index = self.reader_index
        end = reader_index + fmt.size
        if end > len(self._data):
            raise RelinkBufferOutOfBoundError(
                f"Need {fmt.size} bytes at offset {reader_index}, but only {len(self._data) - reader_index} remain"
            )
        (value,) = fmt.unpack_from(self._data, reader_index)
        self.reader_index = end
        return value

    def write_bool(self, value: bool):
        self._pack(_BOOL, bool(value))

    def read_bool(self) -> bool:
        return self._unpack(_BOOL)

    def write_int8(self, value: int):
        self._pack(_INT8, value)

    def read_int8(self) -> int:
        return self._unpack(_INT8)

    def write_int16(self, value: int):
        self._pack(_INT16, value)

    def read_int16(self) -> int:
        return self._unpack(_INT16)

    def write_int32(self, value: int):
        self._pack(_INT32, value)

    def read_int32(self) -> int:
        return self._unpack(_INT32)

    def write_int64(self, value: int):
        self._pack(_INT64, value)

    def read_int64(self) -> int:
        return self._unpack(_INT64)

    def write_float32(self, value: float):
        self._pack(_FLOAT32, value)

    def read_float32(self) -> float:
        return self._unpack(_FLOAT32)

    def write_float64(self, value: float):
        self._pack(_FLOAT64, value)

    def read_float64(self) -> float:
        return self._unpack(_FLOAT64)

    # identities are int64 and field descriptors int32 on the wire
    write_identity = write_int64
    read_identity = read_int64

    def write_bytes(self, value):
        self._data += value

    def read_bytes(self, length: int) -> bytes:
        reader_index = self.reader_index
        if reader_index + length > len(self._data):
            raise RelinkBufferOutOfBoundError(
                f"Need {length} bytes at offset {reader_index}, but only {len(self._data) - reader_index} remain"
            )
        self.reader_index = reader_index + length
        return bytes(self._data[reader_index : reader_index + length])

    def write_text(self, value: str):
        if not isinstance(value, str):
            raise TypeError("{} should be {} instead of {}".format(value, str, type(value)))
        encoded = value.encode("utf-8")
        if TEXT_TERMINATOR in encoded:
            raise RelinkEncodeError(f"Text {value!r} contains the terminator byte and can't be written")
        self._data += encoded
        self._data.append(TEXT_TERMINATOR)

    def read_text(self) -> str:
        """Read code units up to the terminator or the end of the buffer.

        Hitting the end without a terminator is not an error: the text read
        so far is returned.
        """
        reader_index = self.reader_index
        end = self._data.find(TEXT_TERMINATOR, reader_index)
        if end < 0:
            self.reader_index = len(self._data)
            return self._data[reader_index:].decode("utf-8", "replace")
        self.reader_index = end + 1
        return self._data[reader_index:end].decode("utf-8")
