import pytest

from sunxikit.script import (
    GpioEntry,
    NullEntry,
    Script,
    ScriptError,
    SingleEntry,
    StringEntry,
    ValueType,
)


def test_add_and_find_section():
    script = Script()
    first = script.add_section("product")
    second = script.add_section("dram_para")
    assert script.find_section("dram_para") is second
    assert script.find_section("product") is first
    assert script.find_section("missing") is None
    assert [s.name for s in script] == ["product", "dram_para"]


def test_section_name_truncated_to_31():
    script = Script()
    long_name = "a" * 40
    section = script.add_section(long_name)
    assert section.name == long_name[:31]
    assert script.find_section(long_name[:31]) is section


def test_empty_section_name_rejected():
    with pytest.raises(ScriptError):
        Script().add_section("")


def test_entries_keep_order_and_types():
    section = Script().add_section("s")
    n = section.add_null("n")
    w = section.add_single("w", 5)
    t = section.add_string("t", "hello")
    g = section.add_gpio("g", 2, 3, [1, -1, 2, 0])
    assert list(section) == [n, w, t, g]
    assert isinstance(n, NullEntry) and n.type is ValueType.NULL
    assert isinstance(w, SingleEntry) and w.type is ValueType.SINGLE_WORD
    assert isinstance(t, StringEntry) and t.type is ValueType.STRING
    assert isinstance(g, GpioEntry) and g.type is ValueType.GPIO
    assert g.data == (1, -1, 2, 0)
    assert (g.port, g.port_num) == (2, 3)


def test_single_value_reduced_to_uint32():
    section = Script().add_section("s")
    assert section.add_single("neg", -1).value == 0xFFFFFFFF
    assert section.add_single("big", 0x1_0000_0005).value == 5


def test_entry_name_truncated():
    section = Script().add_section("s")
    key = "k" * 50
    entry = section.add_single(key, 1)
    assert entry.name == key[:31]
    assert section.find_entry(key[:31]) is entry


def test_find_entry_returns_first_match():
    section = Script().add_section("s")
    first = section.add_single("dup", 1)
    section.add_single("dup", 2)
    assert section.find_entry("dup") is first
    assert section.find_entry("nothing") is None


def test_remove_entry():
    section = Script().add_section("s")
    a = section.add_single("a", 1)
    b = section.add_string("b", "x")
    section.remove_entry(a)
    assert list(section) == [b]
    assert section.find_entry("a") is None
    with pytest.raises(ScriptError):
        section.remove_entry(a)


def test_remove_section():
    script = Script()
    a = script.add_section("a")
    b = script.add_section("b")
    script.remove_section(a)
    assert list(script) == [b]
    with pytest.raises(ScriptError):
        script.remove_section(a)


def test_gpio_requires_four_values():
    section = Script().add_section("s")
    with pytest.raises(ScriptError):
        section.add_gpio("g", 1, 1, [1, 2, 3])


def test_empty_entry_name_rejected_for_single():
    section = Script().add_section("s")
    with pytest.raises(ScriptError):
        section.add_single("", 1)
    assert len(section) == 0