import io
import logging

import pytest

from sunxikit.fex import FexParseError, generate_fex, parse_fex
from sunxikit.script import GpioEntry, NullEntry, Script, SingleEntry, StringEntry


def parse(text):
    return parse_fex(io.StringIO(text), "test.fex", Script())


def generate(script):
    out = io.StringIO()
    generate_fex(out, script)
    return out.getvalue()


SAMPLE = """\
; a comment
# another comment

[product]
version = "100"
machine = "board"

[dram_para]
dram_clk = 480
dram_tpr0 = 0x42d899b7
dram_emr1 = 0x4
empty =
[uart_para]
uart_tx = port:PB22<2><1><default><default>
uart_rx = port:power3<1><default><2><default>
"""


def test_parse_sample_structure():
    script = parse(SAMPLE)
    assert [s.name for s in script] == ["product", "dram_para", "uart_para"]
    dram = script.find_section("dram_para")
    assert dram.find_entry("dram_clk") == SingleEntry("dram_clk", 480)
    assert dram.find_entry("dram_tpr0").value == 0x42D899B7
    assert isinstance(dram.find_entry("empty"), NullEntry)
    product = script.find_section("product")
    assert product.find_entry("version") == StringEntry("version", "100")


def test_parse_gpio_entries():
    script = parse(SAMPLE)
    uart = script.find_section("uart_para")
    tx = uart.find_entry("uart_tx")
    assert isinstance(tx, GpioEntry)
    assert (tx.port, tx.port_num, tx.data) == (2, 22, (2, 1, -1, -1))
    rx = uart.find_entry("uart_rx")
    assert (rx.port, rx.port_num, rx.data) == (0xFFFF, 3, (1, -1, 2, -1))


def test_round_trip_generate_then_parse():
    script = parse(SAMPLE)
    text = generate(script)
    again = parse(text)
    assert again == script
    assert generate(again) == text


def test_generate_formats():
    text = generate(parse(SAMPLE))
    assert "[dram_para]\n" in text
    assert "dram_clk = 480\n" in text
    assert "dram_tpr0 = 0x42d899b7\n" in text
    assert "empty =\n" in text
    assert 'machine = "board"\n' in text
    assert "uart_tx = port:PB22<2><1><default><default>\n" in text
    assert "uart_rx = port:power3<1><default><2><default>\n" in text


def test_generate_pads_port_number():
    script = Script()
    script.add_section("s").add_gpio("pin", 3, 5, (-1, -1, -1, -1))
    assert "pin = port:PC05<default><default><default><default>\n" in generate(script)


def test_negative_value_wraps_and_prints_signed():
    script = parse("[s]\nx = -1\n")
    assert script.find_section("s").find_entry("x").value == 0xFFFFFFFF
    assert "x = -1\n" in generate(script)


def test_hex_mode_follows_name_prefix():
    script = parse("[s]\ndram_tpr3 = 31\nother = 0x1f\n")
    text = generate(script)
    assert "dram_tpr3 = 0x1f\n" in text
    assert "other = 31\n" in text


def test_colon_line_is_ignored(caplog):
    with caplog.at_level(logging.WARNING):
        script = parse("[s]\n:bad comment\na = 1\n")
    assert [e.name for e in script.find_section("s")] == ["a"]
    assert "malformed comment" in caplog.text


def test_unquoted_value_becomes_string(caplog):
    with caplog.at_level(logging.WARNING):
        script = parse("[s]\nname = hello world\n")
    assert script.find_section("s").find_entry("name") == StringEntry(
        "name", "hello world"
    )
    assert "unquoted" in caplog.text


def test_data_before_section_is_error():
    with pytest.raises(FexParseError, match="data must follow a section"):
        parse("a = 1\n")


def test_invalid_section_character_reports_column():
    with pytest.raises(FexParseError) as info:
        parse("[abc$]\n")
    assert info.value.column == 5
    assert info.value.line == 1


def test_incomplete_section():
    with pytest.raises(FexParseError, match="incomplete section"):
        parse("[abc\n")


def test_key_with_space_is_error():
    with pytest.raises(FexParseError, match="invalid character"):
        parse("[s]\nfoo bar = 1\n")


def test_value_out_of_range():
    with pytest.raises(FexParseError, match="value out of range"):
        parse("[s]\na = 0x100000000\n")


def test_number_with_trailing_garbage():
    with pytest.raises(FexParseError, match="invalid character"):
        parse("[s]\na = 12abc\n")


def test_gpio_port_number_out_of_range():
    with pytest.raises(FexParseError, match="port out of range"):
        parse("[s]\np = port:PA256\n")


def test_gpio_unknown_bank():
    with pytest.raises(FexParseError, match="parse error"):
        parse("[s]\np = port:PZ1\n")


def test_gpio_missing_number():
    with pytest.raises(FexParseError, match="invalid character"):
        parse("[s]\np = port:PA<1>\n")


def test_gpio_trailing_garbage():
    with pytest.raises(FexParseError, match="invalid character"):
        parse("[s]\np = port:PA1<1>x\n")


def test_gpio_negative_setting_out_of_range():
    with pytest.raises(FexParseError, match="value out of range"):
        parse("[s]\np = port:PA1<-1>\n")


def test_string_keeps_inner_text():
    script = parse('[s]\nmsg = "a = b"\n')
    assert script.find_section("s").find_entry("msg").value == "a = b"