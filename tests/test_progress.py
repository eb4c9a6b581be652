import io

import pytest

from sunxikit.progress import (
    BAR_WIDTH,
    Progress,
    estimate,
    format_eta,
    kibi,
    kilo,
    rate,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_progress():
    clock = FakeClock()
    out = io.StringIO()
    return Progress(out=out, clock=clock), clock, out


@pytest.mark.parametrize("value", [0, 1, 1500, 123456])
def test_kilo_kibi_scale(value):
    assert kilo(value) * 1000 == pytest.approx(value)
    assert kibi(value) * 1024 == pytest.approx(value)


def test_rate_and_estimate():
    assert rate(100, 0) == 0.0
    assert rate(100, -1) == 0.0
    assert rate(300, 3) * 3 == pytest.approx(300)
    assert estimate(500, 0) == 0.0
    assert estimate(500, 20) * 20 == pytest.approx(500)


def test_format_eta():
    assert format_eta(125) == "02:05"
    assert format_eta(5999.4) == "99:59"
    assert format_eta(59.6) == format_eta(60)
    assert format_eta(6000) == "--:--"
    assert format_eta(-2) == "--:--"
    assert format_eta(float("inf")) == "--:--"


def test_elapsed_before_and_after_start():
    progress, clock, _ = make_progress()
    assert progress.elapsed() == 0.0
    progress.start(None, 10)
    clock.now += 2.5
    assert progress.elapsed() == pytest.approx(2.5)


def test_update_accumulates_and_calls_back():
    progress, _, _ = make_progress()
    calls = []
    progress.start(lambda total, done: calls.append((total, done)), 100)
    progress.update(30)
    progress.update(20)
    assert calls == [(100, 30), (100, 50)]
    assert progress.done == 50


def test_start_resets_done():
    progress, _, _ = make_progress()
    progress.start(None, 10)
    progress.update(7)
    progress.start(None, 20)
    assert (progress.total, progress.done) == (20, 0)


def test_bar_in_progress():
    progress, clock, out = make_progress()
    progress.start(progress.bar, 1000)
    clock.now += 1
    progress.update(500)
    text = out.getvalue()
    assert text.startswith("\r")
    assert "ETA" in text
    assert not text.endswith("\n")
    inner = text[text.index("[") + 1 : text.index("]")]
    assert len(inner) == BAR_WIDTH
    assert 0 < inner.count("=") < BAR_WIDTH


def test_bar_complete():
    progress, clock, out = make_progress()
    progress.start(progress.bar, 2000)
    clock.now += 1
    progress.update(2000)
    text = out.getvalue()
    assert text.endswith("\n")
    assert text.count("=") == BAR_WIDTH
    assert "ETA" not in text


def test_gauge():
    progress, _, out = make_progress()
    progress.gauge(0, 0)
    assert out.getvalue() == ""
    progress.gauge(10, 10)
    assert out.getvalue() == "100\n"


def test_gauge_xxx_in_progress_and_done():
    progress, clock, out = make_progress()
    progress.start(progress.gauge_xxx, 400)
    clock.now += 2
    progress.update(100)
    text = out.getvalue()
    assert text.startswith("XXX\n") and text.endswith("XXX\n")
    assert "100 of 400" in text
    out.seek(0)
    out.truncate()
    progress.update(300)
    text = out.getvalue()
    assert "Done:" in text
    assert text.count("XXX\n") == 2


def test_gauge_xxx_zero_total_writes_nothing():
    progress, _, out = make_progress()
    progress.gauge_xxx(0, 5)
    assert out.getvalue() == ""