"""Reading and writing the textual .fex form of a sunxi script."""

from __future__ import annotations

import logging
import string
from typing import Iterable, Optional, TextIO

from .script import (
    GPIO_BANK_MAX,
    GpioEntry,
    NullEntry,
    Script,
    ScriptError,
    Section,
    SingleEntry,
    StringEntry,
)

logger = logging.getLogger(__name__)

INT32_MAX = 0x7FFFFFFF
UINT32_MAX = 0xFFFFFFFF
POWER_PORT = 0xFFFF

_BLANK = " \t"
_SPACE = " \t\n\v\f\r"
_DIGITS = {8: "01234567", 10: string.digits, 16: string.hexdigits}

_HEX_ENTRIES = (
    "dram_baseaddr", "dram_zq", "dram_tpr", "dram_emr",
    "g2d_size",
    "rtp_press_threshold", "rtp_sensitive_level",
    "ctp_twi_addr", "csi_twi_addr", "csi_twi_addr_b", "tkey_twi_addr",
    "lcd_gamma_tbl_",
    "gsensor_twi_addr",
)


class FexParseError(ValueError):
    """Raised when .fex text cannot be parsed."""

    def __init__(self, filename: str, line: int, message: str,
                 column: Optional[int] = None) -> None:
        super().__init__(f"{filename}:{line}: {message}")
        self.filename = filename
        self.line = line
        self.column = column


# ---------------------------------------------------------------- generator

def _uses_hex(name: str) -> bool:
    stem = name.rstrip(string.digits)
    return any(item.startswith(stem) for item in _HEX_ENTRIES)


def _signed32(value: int) -> int:
    return value - (1 << 32) if value & 0x80000000 else value


def generate_fex(out: TextIO, script: Script) -> None:
    """Write the script tree as .fex text."""
    for section in script:
        out.write(f"[{section.name}]\n")
        for entry in section:
            if isinstance(entry, SingleEntry):
                if _uses_hex(entry.name):
                    out.write(f"{entry.name} = 0x{entry.value:x}\n")
                else:
                    out.write(f"{entry.name} = {_signed32(entry.value)}\n")
            elif isinstance(entry, StringEntry):
                out.write(f'{entry.name} = "{entry.value}"\n')
            elif isinstance(entry, GpioEntry):
                if entry.port == POWER_PORT:
                    out.write(f"{entry.name} = port:power{entry.port_num}")
                else:
                    bank = chr(ord("A") - 1 + entry.port)
                    out.write(f"{entry.name} = port:P{bank}{entry.port_num:02d}")
                out.write("".join(
                    "<default>" if v == -1 else f"<{v}>" for v in entry.data
                ))
                out.write("\n")
            elif isinstance(entry, NullEntry):
                out.write(f"{entry.name} =\n")
        out.write("\n")


# ------------------------------------------------------------------- parser

def _is_word_char(c: str, extra: str) -> bool:
    return (c.isascii() and c.isalnum()) or c in extra


def _skip_blank(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _BLANK:
        pos += 1
    return pos


def _strtol(text: str, pos: int, base: int) -> tuple:
    """Parse an integer like C strtol; return (value, end). end == pos if none."""
    n = len(text)
    i = pos
    while i < n and text[i] in _SPACE:
        i += 1
    negative = False
    if i < n and text[i] in "+-":
        negative = text[i] == "-"
        i += 1
    if base == 0:
        if (text[i:i + 2] in ("0x", "0X") and i + 2 < n
                and text[i + 2] in string.hexdigits):
            base = 16
            i += 2
        elif text[i:i + 1] == "0":
            base = 8
        else:
            base = 10
    digits = _DIGITS[base]
    start = i
    while i < n and text[i] in digits:
        i += 1
    if i == start:
        return 0, pos
    value = int(text[start:i], base)
    return (-value if negative else value), i


class _LineParser:
    def __init__(self, filename: str, lineno: int, text: str) -> None:
        self.filename = filename
        self.lineno = lineno
        self.text = text

    def error(self, message: str, pos: Optional[int] = None) -> FexParseError:
        column = None if pos is None else pos + 1
        if column is not None:
            message = f"{message} at {column}"
        return FexParseError(self.filename, self.lineno, message + ".", column)

    def invalid_char(self, pos: int) -> FexParseError:
        return self.error("invalid character", pos)

    def parse_section(self, start: int, script: Script) -> Section:
        text = self.text
        p = start + 1
        while p < len(text) and _is_word_char(text[p], "_-/"):
            p += 1
        if p < len(text) and text[p] == "]" and p + 1 == len(text):
            try:
                return script.add_section(text[start + 1:p])
            except ScriptError as exc:
                raise FexParseError(self.filename, self.lineno, str(exc)) from exc
        if p < len(text):
            raise self.invalid_char(p)
        raise FexParseError(self.filename, self.lineno,
                            "incomplete section declaration.")

    def parse_entry(self, start: int, section: Section) -> None:
        text = self.text
        n = len(text)
        p = start
        while p < n and _is_word_char(text[p], "_-"):
            p += 1
        key = text[start:p]
        p = _skip_blank(text, p)
        if p >= n or text[p] != "=":
            raise self.invalid_char(p)
        p = _skip_blank(text, p + 1)

        try:
            if p == n:
                section.add_null(key)
            elif n > p + 1 and text[p] == '"' and text[n - 1] == '"':
                section.add_string(key, text[p + 1:n - 1])
            elif text.startswith("port:", p):
                self.parse_gpio(p + 5, key, section)
            elif text[p].isdigit() or (
                    text[p] == "-" and text[p + 1:p + 2].isdigit()):
                value, end = _strtol(text, p, 0)
                if end != n:
                    raise self.invalid_char(end)
                if value > UINT32_MAX:
                    raise FexParseError(self.filename, self.lineno,
                                        f"value out of range {value}.")
                section.add_single(key, value)
            else:
                value = text[p:]
                logger.warning("%s:%d: unquoted value '%s', assuming string",
                               self.filename, self.lineno, value)
                section.add_string(key, value)
        except ScriptError as exc:
            raise FexParseError(self.filename, self.lineno, str(exc)) from exc

    def parse_gpio(self, p: int, key: str, section: Section) -> None:
        text = self.text
        n = len(text)
        last_bank = chr(ord("A") + GPIO_BANK_MAX)
        if text[p:p + 1] == "P":
            bank = text[p + 1:p + 2]
            if not ("A" <= bank <= last_bank):
                raise self.error("parse error", p)
            port = ord(bank) - ord("A") + 1
            p += 2
        elif text.startswith("power", p):
            port = POWER_PORT
            p += 5
        else:
            raise self.error("parse error", p)

        port_num, end = _strtol(text, p, 10)
        if end == p:
            raise self.invalid_char(p)
        if not 0 <= port_num <= 255:
            raise self.error(f"port out of range ({port_num})", p)
        p = end

        data = [-1, -1, -1, -1]
        for i in range(4):
            if p >= n:
                break
            if text.startswith("<default>", p):
                p += 9
                continue
            if text[p] == "<":
                p += 1
                value, end = _strtol(text, p, 10)
                if end == p:
                    break
                if not 0 <= value <= INT32_MAX:
                    raise self.error(f"value out of range ({value})", p)
                if end >= n or text[end] != ">":
                    p = end
                    break
                p = end + 1
                data[i] = value
                continue
            break
        if p < n:
            raise self.invalid_char(p)
        section.add_gpio(key, port, port_num, data)


def _clean_line(raw: str) -> tuple:
    """Strip line ending, trailing blanks and one trailing ';'; return (text, start)."""
    start = _skip_blank(raw, 0)
    end = len(raw)
    if end > start and raw[end - 1] == "\n":
        if end > start + 1 and raw[end - 2] == "\r":
            end -= 2
        else:
            end -= 1
    while end > start and raw[end - 1] in _BLANK:
        end -= 1
    if end > start and raw[end - 1] == ";":
        end -= 1
    return raw[:end], start


def parse_fex(lines: Iterable[str], filename: str, script: Script) -> Script:
    """Parse .fex text lines into the given script tree and return it."""
    section: Optional[Section] = None
    for lineno, raw in enumerate(lines, 1):
        text, start = _clean_line(raw)
        if start == len(text) or text[start] in ";#":
            continue
        if text[start] == ":":
            logger.warning(
                "%s:%d: invalid line, suspecting typo/malformed comment.",
                filename, lineno)
            continue
        parser = _LineParser(filename, lineno, text)
        if text[start] == "[":
            section = parser.parse_section(start, script)
        else:
            if section is None:
                raise FexParseError(filename, lineno,
                                    "data must follow a section.")
            parser.parse_entry(start, section)
    return script