"""Minimal WebAssembly binary reader/writer.

Only the section framing is understood: a module is the 8-byte header
followed by ``(id, uleb128 size, payload)`` triples. Custom sections (id 0)
start their payload with a length-prefixed UTF-8 name. Non-custom payloads are
kept as opaque bytes, so a parse/encode round trip is byte-exact.
"""

from __future__ import annotations

from dataclasses import dataclass

WASM_MAGIC = b"\x00asm"
WASM_VERSION = b"\x01\x00\x00\x00"
CUSTOM_SECTION_ID = 0


class WasmFormatError(ValueError):
    pass


def encode_uleb128(value: int) -> bytes:
    if value < 0:
        raise ValueError("uleb128 cannot encode negative values")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uleb128(data: bytes, offset: int) -> tuple[int, int]:
    """Return ``(value, next_offset)``."""
    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise WasmFormatError("truncated uleb128")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, offset
        shift += 7
        if shift > 35:
            raise WasmFormatError("uleb128 too long for a u32")


@dataclass(frozen=True)
class Section:
    id: int
    payload: bytes

    def _name_span(self) -> tuple[int, int]:
        size, start = decode_uleb128(self.payload, 0)
        if start + size > len(self.payload):
            raise WasmFormatError("custom section name runs past end of section")
        return start, start + size

    @property
    def custom_name(self) -> str | None:
        if self.id != CUSTOM_SECTION_ID:
            return None
        start, end = self._name_span()
        try:
            return self.payload[start:end].decode("utf-8")
        except UnicodeDecodeError as e:
            raise WasmFormatError(f"custom section name is not UTF-8: {e}") from e

    @property
    def custom_content(self) -> bytes:
        return self.payload[self._name_span()[1] :]

    def encode(self) -> bytes:
        return bytes([self.id]) + encode_uleb128(len(self.payload)) + self.payload


def custom_section(name: str, content: bytes) -> Section:
    raw = name.encode("utf-8")
    return Section(CUSTOM_SECTION_ID, encode_uleb128(len(raw)) + raw + content)


def parse_module(data: bytes) -> list[Section]:
    if data[:4] != WASM_MAGIC:
        raise WasmFormatError("not a wasm module (bad magic)")
    if data[4:8] != WASM_VERSION:
        raise WasmFormatError(f"unsupported wasm version {data[4:8].hex()}")

    sections: list[Section] = []
    offset = 8
    while offset < len(data):
        section_id = data[offset]
        size, start = decode_uleb128(data, offset + 1)
        end = start + size
        if end > len(data):
            raise WasmFormatError(f"section {section_id} runs past end of module")
        sections.append(Section(section_id, data[start:end]))
        offset = end
    return sections


def encode_module(sections: list[Section]) -> bytes:
    return WASM_MAGIC + WASM_VERSION + b"".join(s.encode() for s in sections)
