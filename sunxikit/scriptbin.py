"""Compile a sunxi script tree to its binary form and decompile it back."""

from __future__ import annotations

import logging
import struct
from typing import Tuple

from .script import (
    GPIO_BANK_MAX,
    GpioEntry,
    NullEntry,
    Script,
    ScriptError,
    Section,
    SingleEntry,
    StringEntry,
    ValueType,
)

logger = logging.getLogger(__name__)

POWER_PORT = 0xFFFF
VERSION = (1, 2)
VERSION_LIMIT = 0x10
SECTION_LIMIT = 0x100

_WORD = 4
_HEAD = struct.Struct("<4I")        # sections, filesize, version[0], version[1]
_SECTION = struct.Struct("<32sii")  # name, length, offset (in words)
_ENTRY = struct.Struct("<32sii")    # name, offset (in words), pattern
_GPIO = struct.Struct("<6i")        # port, port_num, mul_sel, pull, drv_level, data
_U32 = struct.Struct("<I")


class BinFormatError(ValueError):
    """Raised when binary script data is malformed or cannot be produced."""


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _name_bytes(name: str) -> bytes:
    return _encode(name)[:31]


def _c_name(raw: bytes) -> str:
    return _decode(raw.split(b"\0", 1)[0])


def _payload(entry) -> bytes:
    """Return the word-aligned data block an entry occupies in the binary."""
    if isinstance(entry, NullEntry):
        return bytes(_WORD)
    if isinstance(entry, SingleEntry):
        return _U32.pack(entry.value & 0xFFFFFFFF)
    if isinstance(entry, StringEntry):
        raw = _encode(entry.value)
        padding = -len(raw) % _WORD
        return raw + bytes(padding)
    if isinstance(entry, GpioEntry):
        return _GPIO.pack(entry.port, entry.port_num, *entry.data)
    raise BinFormatError(f"entry {getattr(entry, 'name', entry)!r} has an unsupported type")


# ---------------------------------------------------------------- generator

def script_bin_size(script: Script) -> Tuple[int, int, int]:
    """Return (binary size in bytes, number of sections, number of entries)."""
    sections = entries = words = 0
    for section in script:
        sections += 1
        for entry in section:
            entries += 1
            words += len(_payload(entry)) // _WORD
    size = (_HEAD.size + sections * _SECTION.size
            + entries * _ENTRY.size + words * _WORD)
    logger.debug("sections:%d entries:%d data:%d/%d -> %d",
                 sections, entries, words, words * _WORD, size)
    return size, sections, entries


def generate_bin(script: Script) -> bytes:
    """Compile the script tree into its binary representation."""
    size, n_sections, n_entries = script_bin_size(script)
    buf = bytearray(size)
    _HEAD.pack_into(buf, 0, n_sections, size, *VERSION)

    section_off = _HEAD.size
    entry_off = section_off + n_sections * _SECTION.size
    data_off = entry_off + n_entries * _ENTRY.size

    for section in script:
        _SECTION.pack_into(buf, section_off, _name_bytes(section.name),
                           len(section), entry_off >> 2)
        section_off += _SECTION.size
        for entry in section:
            payload = _payload(entry)
            words = len(payload) >> 2
            if words > 0xFFFF:
                raise BinFormatError(
                    f"{section.name}.{entry.name}: value too long ({len(payload)} bytes)")
            pattern = (int(entry.type) << 16) | words
            _ENTRY.pack_into(buf, entry_off, _name_bytes(entry.name),
                             data_off >> 2, pattern)
            buf[data_off:data_off + len(payload)] = payload
            entry_off += _ENTRY.size
            data_off += len(payload)
    return bytes(buf)


# --------------------------------------------------------------- decompiler

def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise BinFormatError(f"Malformed data: {what} at {offset} is out of bounds")
    return layout.unpack_from(data, offset)


def _valid_key(name: str) -> bool:
    return all((c.isascii() and c.isalnum()) or c in "_-" for c in name)


def _decompile_entry(data: bytes, filename: str, section: Section,
                     raw_entry: tuple) -> None:
    raw_name, offset, pattern = raw_entry
    name = _c_name(raw_name)
    value_type = (pattern >> 16) & 0xFFFF
    words = pattern & 0xFFFF
    data_off = offset << 2
    where = f"{filename}: {section.name}.{name}"

    if not _valid_key(name):
        logger.warning('Malformed entry key "%s"', name)

    if value_type == ValueType.SINGLE_WORD:
        if words != 1:
            logger.error("%s: invalid length %d (assuming %d)", where, words, 1)
        (value,) = _unpack(_U32, data, data_off, f"{where} value")
        section.add_single(name, value)
    elif value_type == ValueType.STRING:
        if data_off < 0 or data_off > len(data):
            raise BinFormatError(f"Malformed data: {where} value is out of bounds")
        raw = data[data_off:data_off + (words << 2)].split(b"\0", 1)[0]
        section.add_string(name, _decode(raw))
    elif value_type == ValueType.GPIO:
        if words != 6:
            logger.error("%s: invalid length %d (assuming %d)", where, words, 6)
        port, port_num, *values = _unpack(_GPIO, data, data_off, f"{where} value")
        if words == 6 and port != POWER_PORT and not 1 <= port <= GPIO_BANK_MAX:
            bank = chr(ord("A") + port - 1) if 1 <= port <= 26 else ""
            label = f"{bank} " if bank else ""
            raise BinFormatError(f"{where}: unknown GPIO port bank {label}({port})")
        section.add_gpio(name, port, port_num, values)
    elif value_type == ValueType.NULL:
        if not name:
            logger.error("%s: empty entry in section: %s", filename, section.name)
        else:
            section.add_null(name)
    else:
        raise BinFormatError(f"{where}: unknown type {value_type}")


def _decompile_section(data: bytes, filename: str, raw_section: tuple,
                       script: Script) -> None:
    raw_name, length, offset = raw_section
    if offset < 0 or offset > len(data) // 4:
        raise BinFormatError(f"Malformed data: invalid section offset: {offset}")
    available = len(data) - 4 * offset
    if length < 0 or length > available // _ENTRY.size:
        raise BinFormatError(f"Malformed data: invalid section length: {length}")

    section = script.add_section(_c_name(raw_name))
    entry_off = offset << 2
    for _ in range(length):
        raw_entry = _unpack(_ENTRY, data, entry_off, "entry header")
        _decompile_entry(data, filename, section, raw_entry)
        entry_off += _ENTRY.size


def decompile_bin(data: bytes, filename: str, script: Script) -> Script:
    """Decode binary script data into the given script tree and return it."""
    data = bytes(data)
    sections, filesize, major, minor = _unpack(_HEAD, data, 0, "header")
    if major > VERSION_LIMIT or minor > VERSION_LIMIT:
        raise BinFormatError(f"Malformed data: version {major}.{minor}.")
    if sections > SECTION_LIMIT:
        raise BinFormatError(f"Malformed data: too many sections ({sections}).")

    logger.info("%s: version: %d.%d", filename, major, minor)
    logger.info("%s: size: %d (%d sections), header value: %d",
                filename, len(data), sections, filesize)

    for index in range(sections):
        raw_section = _unpack(_SECTION, data, _HEAD.size + index * _SECTION.size,
                              "section header")
        try:
            _decompile_section(data, filename, raw_section, script)
        except ScriptError as exc:
            raise BinFormatError(f"{filename}: {exc}") from exc
    return script