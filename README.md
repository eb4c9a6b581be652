# sunxikit

Python tools for working with Allwinner (sunxi) systems-on-chip:

- an in-memory model of board configuration scripts (`sunxikit.script`)
- a parser and writer for the textual FEX format (`sunxikit.fex`)
- a compiler and decompiler for the binary `script.bin` format (`sunxikit.scriptbin`)
- a generator for a U-Boot DRAM parameter C fragment (`sunxikit.uboot`)
- a PIO register-dump inspector and editor (`sunxikit.pio`, command `sunxi-pio`)
- transfer progress helpers (`sunxikit.progress`)

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

## The script model

A `Script` is an ordered list of `Section`s; each section holds entries of
four kinds: `NullEntry`, `SingleEntry` (an unsigned 32-bit word),
`StringEntry` and `GpioEntry` (port, pin number and four settings, where
`-1` means "default"). Section and entry names are cut to 31 characters.

```python
from sunxikit.script import Script

script = Script()
uart = script.add_section("uart_para")
uart.add_single("uart_debug_port", 0)
uart.add_gpio("uart_debug_tx", 2, 22, (2, 1, -1, -1))   # port:PB22<2><1><default><default>
uart.add_string("name", "console")
uart.add_null("unused")

script.find_section("uart_para").find_entry("name").value   # "console"
```

`remove_section` and `remove_entry` take the object to remove and raise
`ScriptError` if it is not there.

## Converting FEX to script.bin and back

```python
import sys
from sunxikit.script import Script
from sunxikit.fex import parse_fex, generate_fex
from sunxikit.scriptbin import generate_bin, decompile_bin

script = Script()
with open("board.fex") as f:
    parse_fex(f, "board.fex", script)

with open("script.bin", "wb") as f:
    f.write(generate_bin(script))

restored = Script()
with open("script.bin", "rb") as f:
    decompile_bin(f.read(), "script.bin", restored)

generate_fex(sys.stdout, restored)
```

`parse_fex` accepts any iterable of lines. Parse errors raise
`FexParseError`, which carries `filename`, `line` and, where known, `column`.
Unquoted values are taken as strings and lines starting with `:` are
skipped; both are reported as warnings through the `logging` module.

`script_bin_size(script)` returns `(size, sections, entries)` for the binary
that `generate_bin` would produce. Malformed binaries make `decompile_bin`
raise `BinFormatError`.

## U-Boot DRAM parameters

```python
import sys
from sunxikit.uboot import generate_uboot

generate_uboot(sys.stdout, script)
```

This writes a C fragment with a `struct dram_para` initialiser built from the
`[dram_para]` section and a `sunxi_dram_init()` function. If the section is
missing, `UbootError` is raised.

## PIO register dumps

`sunxi-pio` reads a PIO register dump from a file (`-i`, `-` for stdin) or
maps the live registers from `/dev/mem` (`-m`), applies commands to it and
optionally writes the result back (`-o`, `-` for stdout):

```
sunxi-pio -i pio.bin print
sunxi-pio -i pio.bin PB22
sunxi-pio -i pio.bin -o new.bin "PB22<2><1><0>" PB23=1,2 "PH1?1" clean
```

Pin commands:

- `Pxx` — show a pin as `Pxn<mode><pull><drive><data>`
- `Pxx<mode><pull><drive><data>` — configure a pin
- `Pxx=data,drive` — configure as GPIO output
- `Pxx?pull` — configure as GPIO input
- `Pxx*count` — make the pin an output and toggle it `count` times
- `print` — show all pins of ports A to I
- `clean` — clear the data bit of every input pin

The same operations are available as functions working on a writable buffer
(for example a `bytearray`): `read_pin`, `write_pin`, `format_pin`,
`parse_pin`, `set_pin`, `oscillate`, `clean`, `print_all` and `do_command`.
Pin settings are held in a `PinStatus` dataclass.

## Progress reporting

```python
from sunxikit.progress import Progress

progress = Progress()
progress.start(progress.bar, expected_total=1_000_000)
progress.update(250_000)   # redraws the bar on stdout
```

`Progress.gauge` and `Progress.gauge_xxx` write percentages in the form read
by `dialog --gauge`. The helpers `kilo`, `kibi`, `rate`, `estimate` and
`format_eta` are available on their own.

## What is not included

The package does not talk to devices over USB and has no table of SoC
properties (SRAM layout, SID maps, watchdog registers); it works only on
script files and PIO register data.

## Running the tests

```
pip install .[test]
pytest
```