import pytest

from intelbridge.document import LiveDocument


class FakeTimer:
    def __init__(self, clock, when, callback, args):
        self.clock = clock
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Deterministic stand-in for ``loop.call_later``."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self, self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds):
        """Move time forward, firing due timers in deadline order."""
        target = self.now + seconds
        while True:
            due = sorted((t for t in self.pending if t.when <= target),
                         key=lambda t: t.when)
            if not due:
                break
            timer = due[0]
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target


CHAT_HTML = """
<div id="chat">
  <div class="message-in">
    <div class="copyable-text">
      <span class="selectable-text"><span>Call +1 (555) 123-4567 or email a@b.com</span></span>
    </div>
  </div>
  <div class="message-out">
    <div class="copyable-text">
      <span class="selectable-text"><span>see you tomorrow</span></span>
    </div>
  </div>
</div>
"""


def message_html(text):
    return (
        '<div class="message-in"><div class="copyable-text">'
        f'<span class="selectable-text"><span>{text}</span></span>'
        '</div></div>'
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chat_document():
    return LiveDocument(CHAT_HTML)


@pytest.fixture
def make_message():
    return message_html
