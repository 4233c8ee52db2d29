"""Remoting command model and the two wire codecs (JSON and binary)."""

from __future__ import annotations

import enum
import json
import struct
import threading
from dataclasses import dataclass, field
from typing import BinaryIO, Mapping, Optional, Protocol

RPC_TYPE = 0
RPC_ONEWAY = 1
RESPONSE_TYPE = 1
DEFAULT_FLAG = 0
DEFAULT_VERSION = 317

# code(2) + language(1) + version(2) + opaque(4) + flag(4) + remark len(4) + ext len(4)
HEADER_FIXED_LENGTH = 21

_TEXT_ENCODING = "utf-8"
_TEXT_ERRORS = "surrogateescape"


class CodecError(ValueError):
    """Raised when a frame or header cannot be encoded or decoded."""


class LanguageCode(enum.IntEnum):
    """Language flag carried in every command header."""

    JAVA = 0
    GO = 9
    UNKNOWN = 127

    def __str__(self) -> str:
        if self is LanguageCode.JAVA:
            return "JAVA"
        if self is LanguageCode.GO:
            return "GO"
        return "unknown"

    @classmethod
    def from_json(cls, value: object) -> "LanguageCode":
        """Map the JSON ``language`` value to a code."""
        return cls.GO if value == "GO" else cls.UNKNOWN

    @classmethod
    def from_byte(cls, value: int) -> "LanguageCode":
        """Map the binary language byte to a code."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class CodecType(enum.IntEnum):
    """Header serialisation kind, stored in the top byte of the header length."""

    JSON = 0
    ROCKETMQ = 1


class CustomHeader(Protocol):
    def encode(self) -> dict[str, str]:
        ...


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


class _OpaqueCounter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def next(self) -> int:
        with self._lock:
            self._value = _to_int32(self._value + 1)
            return self._value


_opaque = _OpaqueCounter()


def _text(data: bytes) -> str:
    return data.decode(_TEXT_ENCODING, _TEXT_ERRORS)


def _raw(text: str) -> bytes:
    return text.encode(_TEXT_ENCODING, _TEXT_ERRORS)


@dataclass
class RemotingCommand:
    """A single request or response exchanged with a broker or name server."""

    code: int
    language: LanguageCode = LanguageCode.GO
    version: int = DEFAULT_VERSION
    opaque: int = 0
    flag: int = DEFAULT_FLAG
    remark: str = ""
    ext_fields: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def create(
        cls,
        code: int,
        header: Optional[CustomHeader] = None,
        body: Optional[bytes] = None,
    ) -> "RemotingCommand":
        """Build a new command with a fresh opaque id."""
        ext_fields = dict(header.encode()) if header is not None else {}
        return cls(
            code=code,
            version=DEFAULT_VERSION,
            opaque=_opaque.next(),
            body=bytes(body) if body else b"",
            language=LanguageCode.GO,
            ext_fields=ext_fields,
        )

    def __str__(self) -> str:
        fields = " ".join(f"{k}:{v}" for k, v in sorted(self.ext_fields.items()))
        return (
            f"Code: {self.code}, opaque: {self.opaque}, "
            f"Remark: {self.remark}, ExtFields: map[{fields}]"
        )

    def is_response_type(self) -> bool:
        return self.flag & RESPONSE_TYPE == RESPONSE_TYPE

    def mark_response_type(self) -> None:
        self.flag |= RESPONSE_TYPE

    def write_to(self, stream: BinaryIO, codec: CodecType = CodecType.JSON) -> None:
        """Write the whole frame, length prefix included, to ``stream``."""
        stream.write(encode(self, codec))


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read(self, size: int) -> bytes:
        if size < 0:
            raise CodecError(f"negative length: {size}")
        if self.remaining < size:
            raise CodecError("unexpected EOF")
        chunk = bytes(self._data[self._pos:self._pos + size])
        self._pos += size
        return chunk

    def unpack(self, fmt: str) -> int:
        (value,) = struct.unpack(fmt, self.read(struct.calcsize(fmt)))
        return value


class JsonCodec:
    """Header serialised as a JSON object."""

    def encode_header(self, command: RemotingCommand) -> bytes:
        document = {
            "code": command.code,
            "language": "GO",
            "version": command.version,
            "opaque": command.opaque,
            "flag": command.flag,
            "remark": command.remark,
            "extFields": command.ext_fields,
        }
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode(
            _TEXT_ENCODING, _TEXT_ERRORS
        )

    def decode_header(self, data: bytes) -> RemotingCommand:
        try:
            document = json.loads(_text(bytes(data)))
        except json.JSONDecodeError as exc:
            raise CodecError(f"invalid JSON header: {exc}") from exc
        if not isinstance(document, dict):
            raise CodecError("JSON header is not an object")
        try:
            ext = document.get("extFields") or {}
            return RemotingCommand(
                code=int(document.get("code") or 0),
                language=LanguageCode.from_json(document.get("language")),
                version=int(document.get("version") or 0),
                opaque=int(document.get("opaque") or 0),
                flag=int(document.get("flag") or 0),
                remark=str(document.get("remark") or ""),
                ext_fields={str(k): str(v) for k, v in dict(ext).items()},
                body=b"",
            )
        except (TypeError, ValueError) as exc:
            raise CodecError(f"invalid JSON header field: {exc}") from exc


class RocketMQCodec:
    """Compact binary header.

    Layout: code(2) language(1) version(2) opaque(4) flag(4)
    remark_len(4) remark ext_len(4) ext, all big-endian.
    """

    def encode_header(self, command: RemotingCommand) -> bytes:
        ext = self._encode_maps(command.ext_fields)
        remark = _raw(command.remark)
        try:
            fixed = struct.pack(
                ">hBhii",
                command.code,
                int(LanguageCode.GO),
                command.version,
                command.opaque,
                command.flag,
            )
        except struct.error as exc:
            raise CodecError(str(exc)) from exc
        return b"".join(
            (
                fixed,
                struct.pack(">i", len(remark)),
                remark,
                struct.pack(">i", len(ext)),
                ext,
            )
        )

    @staticmethod
    def _encode_maps(maps: Mapping[str, str]) -> bytes:
        parts = []
        for key, value in (maps or {}).items():
            raw_key, raw_value = _raw(key), _raw(value)
            parts.append(struct.pack(">h", len(raw_key)))
            parts.append(raw_key)
            parts.append(struct.pack(">i", len(raw_value)))
            parts.append(raw_value)
        return b"".join(parts)

    def decode_header(self, data: bytes) -> RemotingCommand:
        reader = _Reader(data)
        code = reader.unpack(">h")
        language = LanguageCode.from_byte(reader.unpack(">B"))
        version = reader.unpack(">h")
        opaque = reader.unpack(">i")
        flag = reader.unpack(">i")

        remark = ""
        remark_len = reader.unpack(">i")
        if remark_len > 0:
            remark = _text(reader.read(remark_len))

        ext_fields: dict[str, str] = {}
        ext_len = reader.unpack(">i")
        if ext_len > 0:
            ext_reader = _Reader(reader.read(ext_len))
            while ext_reader.remaining > 0:
                key = _text(ext_reader.read(ext_reader.unpack(">h")))
                value = _text(ext_reader.read(ext_reader.unpack(">i")))
                ext_fields[key] = value

        return RemotingCommand(
            code=code,
            language=language,
            version=version,
            opaque=opaque,
            flag=flag,
            remark=remark,
            ext_fields=ext_fields,
        )


JSON_CODEC = JsonCodec()
ROCKETMQ_CODEC = RocketMQCodec()

_SERIALIZERS = {
    CodecType.JSON: JSON_CODEC,
    CodecType.ROCKETMQ: ROCKETMQ_CODEC,
}


def _mark_protocol_type(length: int, codec: CodecType) -> bytes:
    return bytes(
        (
            int(codec) & 0xFF,
            (length >> 16) & 0xFF,
            (length >> 8) & 0xFF,
            length & 0xFF,
        )
    )


def encode(command: RemotingCommand, codec: CodecType = CodecType.JSON) -> bytes:
    """Encode ``command`` as a full frame: total length, header length, header, body."""
    header = _SERIALIZERS[CodecType(codec)].encode_header(command)
    body = command.body or b""
    frame_size = 4 + len(header) + len(body)
    return b"".join(
        (
            struct.pack(">i", frame_size),
            _mark_protocol_type(len(header), CodecType(codec)),
            header,
            body,
        )
    )


def decode(data: bytes) -> RemotingCommand:
    """Decode a frame whose leading total-length field has been stripped."""
    reader = _Reader(bytes(data))
    original = reader.unpack(">I")
    header_length = original & 0xFFFFFF
    header_data = reader.read(header_length)

    codec_type = (original >> 24) & 0xFF
    try:
        serializer = _SERIALIZERS[CodecType(codec_type)]
    except ValueError:
        raise CodecError(f"unknown codec type: {codec_type}") from None
    command = serializer.decode_header(header_data)

    body_length = len(data) - 4 - header_length
    if body_length > 0:
        command.body = reader.read(body_length)
    return command