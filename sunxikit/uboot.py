"""Generate U-Boot DRAM parameter C source from a sunxi script."""

from __future__ import annotations

import logging
from typing import TextIO

from .script import Entry, GpioEntry, NullEntry, Script, SingleEntry

logger = logging.getLogger(__name__)

POWER_PORT = 0xFFFF


class UbootError(ValueError):
    """Raised when the script lacks data needed for U-Boot output."""


# (name in script, translated key or None, hexadecimal output)
_DRAM_MEMBERS = (
    ("dram_clock", None, False),
    ("dram_clk", "clock", False),
    ("dram_type", None, False),
    ("dram_rank_num", None, False),
    ("dram_density", None, False),
    ("dram_chip_density", "density", False),
    ("dram_io_width", None, False),
    ("dram_bus_width", None, False),
    ("dram_cas", None, False),
    ("dram_zq", None, False),
    ("dram_odt_en", None, False),
    ("dram_size", None, False),
    ("dram_tpr0", None, True),
    ("dram_tpr1", None, True),
    ("dram_tpr2", None, True),
    ("dram_tpr3", None, True),
    ("dram_tpr4", None, True),
    ("dram_tpr5", None, True),
    ("dram_emr1", None, True),
    ("dram_emr2", None, True),
    ("dram_emr3", None, True),
)

_HEADER = (
    "/* this file is generated, don't edit it yourself */\n\n"
    "#include <common.h>\n"
    "#include <asm/arch/dram.h>\n\n"
)


def _alt_hex(value: int) -> str:
    return "0" if value == 0 else f"0x{value:x}"


def _write_member(out: TextIO, key: str, hexa: bool, entry: Entry) -> bool:
    if isinstance(entry, SingleEntry):
        text = _alt_hex(entry.value) if hexa else str(entry.value)
        out.write(f"\t.{key} = {text},\n")
    elif isinstance(entry, NullEntry):
        out.write(f"\t/* {key} is NULL */\n")
    elif isinstance(entry, GpioEntry):
        out.write(f"\t.{key} = ")
        if entry.port == POWER_PORT:
            out.write(f"GPIO_AXP_CFG({entry.port_num}")
        else:
            out.write(f"GPIO_CFG({entry.port}, {entry.port_num}")
        for value in entry.data:
            out.write(", 0xff" if value == -1 else f", {value & 0xFFFFFFFF}")
        out.write("),\n")
    else:
        return False
    return True


def generate_uboot(out: TextIO, script: Script) -> None:
    """Write the dram_para section as a U-Boot C source fragment."""
    section = script.find_section("dram_para")
    if section is None:
        raise UbootError("dram_para: critical section missing")

    out.write(_HEADER)
    out.write("static struct dram_para dram_para = {\n")
    for name, translation, hexa in _DRAM_MEMBERS:
        entry = section.find_entry(name)
        if entry is None:
            continue
        key = translation or name[5:]
        if not _write_member(out, key, hexa, entry):
            logger.error("dram_para: %s: invalid field", entry.name)
    out.write("};\n")
    out.write(
        "\nunsigned long sunxi_dram_init(void)\n"
        "{\n\treturn dramc_init(&dram_para);\n}\n"
    )