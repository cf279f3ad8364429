"""
Encoder for carbon's pickle receiver.

A batch goes out as one frame: a 4 byte big-endian length header followed by
a pickle (protocol 2) of a list of (path, (timestamp, value)) tuples.
The opcodes are written by hand so that a batch can be built without going
through the pickle machinery, but the result is something pickle.loads
understands.

https://graphite.readthedocs.io/en/latest/feeding-carbon.html#the-pickle-protocol
"""
import struct
from typing import Sequence

from .sample import Sample

HEADER = struct.Struct('!I')

# PROTO 2, EMPTY_LIST
PREAMBLE = b'\x80\x02]'
# STOP
TERMINATOR = b'.'

BINPUT_0 = b'q\x00'
BINUNICODE = b'X'
BINPUT_1 = b'q\x01'
BININT = b'J'
BINFLOAT = b'G'
# TUPLE2, BINPUT 2, TUPLE2, BINPUT 3, APPEND
RECORD_CLOSE = b'\x86q\x02\x86q\x03a'

_UNICODE_LENGTH = struct.Struct('<I')
_INT = struct.Struct('<i')
_FLOAT = struct.Struct('>d')

# Bytes in a record that do not depend on the path
RECORD_OVERHEAD = (
    len(BINPUT_0) + len(BINUNICODE) + _UNICODE_LENGTH.size + len(BINPUT_1)
    + len(BININT) + _INT.size + len(BINFLOAT) + _FLOAT.size + len(RECORD_CLOSE)
)


def _path_bytes(sample: Sample) -> bytes:
    return sample.path.encode('utf-8')


def payload_size(samples: Sequence[Sample]) -> int:
    """Size of the frame payload for these samples, header excluded."""
    size = len(PREAMBLE) + len(TERMINATOR)
    for sample in samples:
        size += RECORD_OVERHEAD + len(_path_bytes(sample))
    return size


def encode_record(sample: Sample) -> bytes:
    path = _path_bytes(sample)
    return b''.join((
        BINPUT_0,
        BINUNICODE, _UNICODE_LENGTH.pack(len(path)), path,
        BINPUT_1,
        BININT, _INT.pack(sample.timestamp),
        BINFLOAT, _FLOAT.pack(sample.value),
        RECORD_CLOSE,
    ))


def build_message(samples: Sequence[Sample]) -> bytes:
    """
    Encode a batch of samples as a single frame.

    Args:
        samples (list): The samples to encode, in order

    Returns:
        bytes: Length header followed by the pickled payload

    Raises:
        AssertionError: If the emitted payload does not match the computed size
    """
    expected = payload_size(samples)

    parts = [PREAMBLE]
    parts.extend(encode_record(sample) for sample in samples)
    parts.append(TERMINATOR)
    payload = b''.join(parts)

    # Raised explicitly so the check survives python -O
    if len(payload) != expected:
        raise AssertionError(f"Encoded payload is {len(payload)} bytes, expected {expected}")

    return HEADER.pack(len(payload)) + payload
