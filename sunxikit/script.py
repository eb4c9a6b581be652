"""In-memory tree of a sunxi script: named sections holding typed entries."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, Optional, Sequence, Union

NAME_MAX = 31
GPIO_BANK_MAX = 14  # N, (zero-based) index 13


class ScriptError(ValueError):
    """Raised when a script tree is used inconsistently."""


class ValueType(enum.IntEnum):
    """Types of values an entry can hold."""

    SINGLE_WORD = 1
    STRING = 2
    MULTI_WORD = 3
    GPIO = 4
    NULL = 5


def _truncate(name: str) -> str:
    return name[:NAME_MAX]


@dataclass
class NullEntry:
    """Entry that carries a key but no value."""

    name: str
    type: ClassVar[ValueType] = ValueType.NULL


@dataclass
class SingleEntry:
    """Entry holding one unsigned 32-bit word."""

    name: str
    value: int
    type: ClassVar[ValueType] = ValueType.SINGLE_WORD

    def __post_init__(self) -> None:
        self.value &= 0xFFFFFFFF


@dataclass
class StringEntry:
    """Entry holding a string value."""

    name: str
    value: str
    type: ClassVar[ValueType] = ValueType.STRING


@dataclass
class GpioEntry:
    """Entry describing a GPIO pin and its four settings (-1 means default)."""

    name: str
    port: int
    port_num: int
    data: tuple = (-1, -1, -1, -1)
    type: ClassVar[ValueType] = ValueType.GPIO

    def __post_init__(self) -> None:
        data = tuple(int(v) for v in self.data)
        if len(data) != 4:
            raise ScriptError(
                f"GPIO entry {self.name!r} needs 4 data values, got {len(data)}"
            )
        self.data = data


Entry = Union[NullEntry, SingleEntry, StringEntry, GpioEntry]


@dataclass
class Section:
    """A named section with an ordered list of entries."""

    name: str
    entries: list = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name:
            raise ScriptError("section name must not be empty")
        self.name = _truncate(self.name)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def _append(self, entry: Entry) -> Entry:
        entry.name = _truncate(entry.name)
        self.entries.append(entry)
        return entry

    @staticmethod
    def _require_name(name: str) -> None:
        if not name:
            raise ScriptError("entry name must not be empty")

    def add_null(self, name: str) -> NullEntry:
        """Append an empty entry."""
        self._require_name(name)
        return self._append(NullEntry(name))

    def add_single(self, name: str, value: int) -> SingleEntry:
        """Append a 32-bit word entry; the value is reduced to 32 bits."""
        self._require_name(name)
        return self._append(SingleEntry(name, value))

    def add_string(self, name: str, value: str) -> StringEntry:
        """Append a string entry."""
        return self._append(StringEntry(name, value))

    def add_gpio(
        self, name: str, port: int, port_num: int, data: Sequence[int]
    ) -> GpioEntry:
        """Append a GPIO entry."""
        self._require_name(name)
        return self._append(GpioEntry(name, port, port_num, tuple(data)))

    def find_entry(self, name: str) -> Optional[Entry]:
        """Return the first entry with the given name, or None."""
        return next((e for e in self.entries if e.name == name), None)

    def remove_entry(self, entry: Entry) -> None:
        """Remove an entry from this section."""
        for i, existing in enumerate(self.entries):
            if existing is entry:
                del self.entries[i]
                return
        raise ScriptError(f"entry {entry.name!r} is not in section {self.name!r}")


@dataclass
class Script:
    """Root of the script tree: an ordered list of sections."""

    sections: list = field(default_factory=list)

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def add_section(self, name: str) -> Section:
        """Create a section and append it to the script."""
        section = Section(name)
        self.sections.append(section)
        return section

    def find_section(self, name: str) -> Optional[Section]:
        """Return the first section with the given name, or None."""
        return next((s for s in self.sections if s.name == name), None)

    def remove_section(self, section: Section) -> None:
        """Remove a section (and all its entries) from the script."""
        for i, existing in enumerate(self.sections):
            if existing is section:
                del self.sections[i]
                return
        raise ScriptError(f"section {section.name!r} is not in the script")