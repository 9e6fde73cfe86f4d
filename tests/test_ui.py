import logging

from iacscan.ui import INFINITE_PROGRESS, UI


class FakeBar:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def set_title(self, title):
        self.calls.append(("set_title", title))

    def update_progress(self, progress):
        self.calls.append(("update_progress", progress))

    def clear(self):
        self.calls.append(("clear",))
        if self.fail:
            raise RuntimeError("terminal gone")


class FakeBackend:
    def __init__(self, bar=None):
        self.outputs = []
        self.bar = bar or FakeBar()

    def output(self, message):
        self.outputs.append(message)

    def new_progress_bar(self):
        return self.bar


def test_display_title():
    backend = FakeBackend()
    UI(backend, color=False).display_title()
    assert backend.outputs == ["\nSnyk Infrastructure As Code\n"]


def test_display_completed():
    backend = FakeBackend()
    UI(backend, color=False).display_completed()
    assert backend.outputs == ["✔ Test completed."]


def test_progress_bar():
    backend = FakeBackend()
    ui = UI(backend, color=False)
    ui.start_progress_bar()
    ui.clear_progress_bar()
    assert backend.bar.calls == [
        ("set_title", "Snyk testing Infrastructure as Code configuration issues."),
        ("update_progress", INFINITE_PROGRESS),
        ("clear",),
    ]


def test_disabled():
    backend = FakeBackend()
    ui = UI(backend, disabled=True)
    ui.display_title()
    ui.start_progress_bar()
    ui.clear_progress_bar()
    ui.display_completed()
    assert backend.outputs == []
    assert backend.bar.calls == []


def test_colored_title_is_bold():
    backend = FakeBackend()
    UI(backend, color=True).display_title()
    assert backend.outputs[0].startswith("\n\x1b[1m")
    assert "Snyk Infrastructure As Code" in backend.outputs[0]


def test_clear_failure_is_logged(caplog):
    backend = FakeBackend(FakeBar(fail=True))
    ui = UI(backend, logger=logging.getLogger("ui-test"), color=False)
    with caplog.at_level(logging.ERROR, logger="ui-test"):
        ui.clear_progress_bar()
    assert "Failed to clear progress" in caplog.text