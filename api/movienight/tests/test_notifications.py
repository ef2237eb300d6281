from __future__ import annotations

from movienight.client.notifications import TOAST_DURATION_SECONDS, Notifier


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_toast_expires_after_duration():
    clock = FakeClock()
    notifier = Notifier(clock=clock)

    notifier.success("Filters added")
    clock.now += TOAST_DURATION_SECONDS - 0.1
    assert notifier.current is not None
    clock.now += 0.2
    assert notifier.current is None


def test_new_toast_replaces_current_one():
    clock = FakeClock()
    notifier = Notifier(clock=clock)

    notifier.success("Saved")
    clock.now += 3
    notifier.error("Unable to save filter")

    assert notifier.current.text == "Unable to save filter"
    clock.now += 3
    assert notifier.current is not None


def test_listeners_receive_every_toast_until_unsubscribed():
    notifier = Notifier()
    seen: list[str] = []
    unsubscribe = notifier.subscribe(lambda toast: seen.append(toast.text))

    notifier.success("one")
    unsubscribe()
    notifier.success("two")

    assert seen == ["one"]


def test_dismiss_clears_current():
    notifier = Notifier()
    notifier.error("boom")
    notifier.dismiss()
    assert notifier.current is None
