"""Inspect and modify sunxi PIO (GPIO) register state in a buffer or in memory."""

from __future__ import annotations

import getopt
import mmap
import os
import re
import struct
import sys
from dataclasses import dataclass, replace
from typing import List, Optional, TextIO, Tuple

PIO_REG_SIZE = 0x228
PIO_PORT_SIZE = 0x24
PIO_NR_PORTS = 9  # A-I
PINS_PER_PORT = 32
PIO_BASE = 0x01C20800

_U32 = struct.Struct("<I")
_INT_RE = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_ATOI_RE = re.compile(r"\s*([+-]?\d+)")

_USAGE = """\
usage: {prog} -m|-i input [-o output] pin..
 -m				mmap - read pin state from system
 -i				read pin state from file
 -o				save pin state data to file
 print				Show all pins
 Pxx				Show pin
 Pxx<mode><pull><drive><data>	Configure pin
 Pxx=data,drive			Configure GPIO output
 Pxx*count			Oscillate GPIO output (mmap mode only)
 Pxx?pull			Configure GPIO input
 clean				Clean input pins

	mode 0-7, 0=input, 1=output, 2-7 I/O function
	pull 0=none, 1=up, 2=down
	drive 0-3, I/O drive level
"""


@dataclass
class PinStatus:
    """Settings of one pin; a negative value means 'leave unchanged' / 'n/a'."""

    mul_sel: int = -1
    pull: int = -1
    drv_level: int = -1
    data: int = -1


def _check(port: int, pin: int) -> None:
    if not 0 <= port < PIO_NR_PORTS:
        raise ValueError(f"invalid PIO port {port}")
    if not 0 <= pin < PINS_PER_PORT:
        raise ValueError(f"invalid pin number {pin}")


def _cfg_reg(port: int, index: int) -> int:
    return port * PIO_PORT_SIZE + (index << 2)


def _dlevel_reg(port: int, index: int) -> int:
    return port * PIO_PORT_SIZE + (index << 2) + 0x14


def _pull_reg(port: int, index: int) -> int:
    return port * PIO_PORT_SIZE + (index << 2) + 0x1C


def _data_reg(port: int) -> int:
    return port * PIO_PORT_SIZE + 0x10


def _get(buf, offset: int) -> int:
    return _U32.unpack_from(buf, offset)[0]


def _put(buf, offset: int, value: int) -> None:
    _U32.pack_into(buf, offset, value & 0xFFFFFFFF)


def _update(buf, offset: int, mask: int, shift: int, value: int) -> None:
    current = _get(buf, offset)
    current &= ~(mask << shift)
    current |= (value & mask) << shift
    _put(buf, offset, current)


def read_pin(buf, port: int, pin: int) -> PinStatus:
    """Decode the state of one pin from the register buffer."""
    _check(port, pin)
    func_index, func_shift = pin >> 3, (pin & 0x07) << 2
    pull_index, pull_shift = pin >> 4, (pin & 0x0F) << 1

    mul_sel = (_get(buf, _cfg_reg(port, func_index)) >> func_shift) & 0x07
    pull = (_get(buf, _pull_reg(port, pull_index)) >> pull_shift) & 0x03
    drv_level = (_get(buf, _dlevel_reg(port, pull_index)) >> pull_shift) & 0x03
    if mul_sel > 1:
        data = -1
    else:
        data = (_get(buf, _data_reg(port)) >> pin) & 0x01
    return PinStatus(mul_sel, pull, drv_level, data)


def write_pin(buf, port: int, pin: int, status: PinStatus) -> None:
    """Store the non-negative fields of status into the register buffer."""
    _check(port, pin)
    func_index, func_shift = pin >> 3, (pin & 0x07) << 2
    pull_index, pull_shift = pin >> 4, (pin & 0x0F) << 1

    if status.mul_sel >= 0:
        _update(buf, _cfg_reg(port, func_index), 0x07, func_shift, status.mul_sel)
    if status.pull >= 0:
        _update(buf, _pull_reg(port, pull_index), 0x03, pull_shift, status.pull)
    if status.drv_level >= 0:
        _update(buf, _dlevel_reg(port, pull_index), 0x03, pull_shift,
                status.drv_level)
    if status.data >= 0:
        offset = _data_reg(port)
        value = _get(buf, offset)
        if status.data:
            value |= 1 << pin
        else:
            value &= ~(1 << pin)
        _put(buf, offset, value)


def format_pin(port: int, pin: int, status: PinStatus) -> str:
    """Render a pin as 'Pxn<mode><pull><drive>[<data>]'."""
    text = (f"P{chr(ord('A') + port)}{pin}"
            f"<{status.mul_sel & 0xFFFFFFFF:x}>"
            f"<{status.pull & 0xFFFFFFFF:x}>"
            f"<{status.drv_level & 0xFFFFFFFF:x}>")
    if status.data >= 0:
        text += f"<{status.data:x}>"
    return text


def parse_pin(name: str) -> Tuple[int, int]:
    """Split a pin name such as 'PB12' (the 'P' is optional) into (port, pin)."""
    if name.startswith("P"):
        name = name[1:]
    if not name:
        raise ValueError("missing pin port")
    port = ord(name[0]) - ord("A")
    match = _ATOI_RE.match(name[1:])
    pin = int(match.group(1)) if match else 0
    return port, pin


def _parse_int(text: str) -> Optional[int]:
    """Parse an integer with C-style base prefixes; None if there is none."""
    match = _INT_RE.match(text)
    if not match:
        return None
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    if sign == "-":
        value = -value
    if not -(1 << 63) <= value < (1 << 63):
        return None
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _field(text: str, default: int) -> int:
    value = _parse_int(text)
    return default if value is None else value


def set_pin(buf, command: str) -> PinStatus:
    """Apply a 'Pxx=..', 'Pxx?..' or 'Pxx<..>' command; return the new settings."""
    port, pin = parse_pin(command)
    status = read_pin(buf, port, pin)
    if "=" in command:
        rest = command.split("=", 1)[1]
        status.mul_sel = 1
        status.data = _field(rest, status.data)
        if "," in rest:
            status.drv_level = _field(rest.split(",", 1)[1], status.drv_level)
    elif "?" in command:
        status.mul_sel = 0
        status.data = 0
        status.drv_level = 0
        status.pull = _field(command.split("?", 1)[1], status.pull)
    elif "<" in command:
        fields = command.split("<")[1:5]
        names = ("mul_sel", "pull", "drv_level", "data")
        for name, text in zip(names, fields):
            setattr(status, name, _field(text, getattr(status, name)))
    write_pin(buf, port, pin, status)
    return status


def oscillate(buf, command: str) -> None:
    """Make the pin an output and toggle its data bit 'Pxx*count' times."""
    port, pin = parse_pin(command)
    status = read_pin(buf, port, pin)
    write_pin(buf, port, pin, replace(status, mul_sel=1))

    count = 0
    if "*" in command:
        count = _field(command.split("*", 1)[1], 0)
    offset = _data_reg(port)
    value = _get(buf, offset)
    for _ in range(count):
        value ^= 1 << pin
        _put(buf, offset, value)


def clean(buf) -> None:
    """Clear the data bit of every pin configured as input."""
    for port in range(PIO_NR_PORTS):
        for pin in range(PINS_PER_PORT):
            status = read_pin(buf, port, pin)
            if status.mul_sel == 0:
                status.data = 0
                write_pin(buf, port, pin, status)


def print_all(buf, out: TextIO) -> None:
    """Write the state of every pin, one per line."""
    for port in range(PIO_NR_PORTS):
        for pin in range(PINS_PER_PORT):
            out.write(format_pin(port, pin, read_pin(buf, port, pin)) + "\n")


def do_command(buf, command: str, out: TextIO) -> None:
    """Run one command-line pin command against the buffer."""
    if command.startswith("P"):
        if "<" in command or "=" in command or "?" in command:
            set_pin(buf, command)
        elif "*" in command:
            oscillate(buf, command)
        else:
            port, pin = parse_pin(command)
            out.write(format_pin(port, pin, read_pin(buf, port, pin)) + "\n")
    elif command == "print":
        print_all(buf, out)
    elif command == "clean":
        clean(buf)
    else:
        raise ValueError(f"unknown command {command!r}")


def _usage(prog: str, rc: int) -> int:
    sys.stderr.write("sunxi-pio\n\n" + _USAGE.format(prog=prog))
    return rc


def _map_registers():
    if not hasattr(mmap, "MAP_SHARED"):
        raise OSError("mmap PIO: Function not implemented")
    pagesize = mmap.PAGESIZE
    addr = PIO_BASE & ~(pagesize - 1)
    offset = PIO_BASE & (pagesize - 1)
    length = (0x800 + pagesize - 1) & ~(pagesize - 1)
    fd = os.open("/dev/mem", os.O_RDWR)
    try:
        mapping = mmap.mmap(fd, length, mmap.MAP_SHARED,
                            mmap.PROT_READ | mmap.PROT_WRITE, offset=addr)
    finally:
        os.close(fd)
    return mapping, offset


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    args = list(sys.argv if argv is None else argv)
    prog = args[0] if args else "sunxi-pio"
    try:
        opts, commands = getopt.getopt(args[1:], "i:o:m")
    except getopt.GetoptError:
        return _usage(prog, 0)

    in_name = out_name = None
    use_mmap = False
    for opt, value in opts:
        if opt == "-m":
            use_mmap = True
        elif opt == "-i":
            in_name = value
        elif opt == "-o":
            out_name = value
    if in_name is None and not use_mmap:
        return _usage(prog, 1)

    mapping = None
    buf = bytearray(PIO_REG_SIZE)
    try:
        if use_mmap:
            try:
                mapping, offset = _map_registers()
            except OSError as exc:
                sys.stderr.write(f"mmap PIO: {exc}\n")
                return 1
            buf = memoryview(mapping)[offset:offset + PIO_REG_SIZE]

        if in_name is not None:
            try:
                if in_name == "-":
                    data = sys.stdin.buffer.read(PIO_REG_SIZE)
                else:
                    with open(in_name, "rb") as handle:
                        data = handle.read(PIO_REG_SIZE)
            except OSError as exc:
                sys.stderr.write(f"open input: {exc}\n")
                return 1
            if len(data) != PIO_REG_SIZE:
                sys.stderr.write("read input: short read\n")
                return 1
            buf[:] = data

        for command in commands:
            try:
                do_command(buf, command, sys.stdout)
            except ValueError:
                return _usage(prog, 1)

        if out_name is not None:
            payload = bytes(buf)
            try:
                if out_name == "-":
                    sys.stdout.flush()
                    sys.stdout.buffer.write(payload)
                    sys.stdout.buffer.flush()
                else:
                    with open(out_name, "wb") as handle:
                        handle.write(payload)
            except OSError as exc:
                sys.stderr.write(f"write output: {exc}\n")
                return 1
        return 0
    finally:
        if isinstance(buf, memoryview):
            buf.release()
        if mapping is not None:
            mapping.close()