"""Tools for Allwinner sunxi SoCs: FEX and script.bin handling, U-Boot DRAM output, PIO dumps and progress."""

__version__ = "0.1.0"