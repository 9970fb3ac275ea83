from invoicing.services.scheduler import ManualScheduler


def test_runs_callbacks_in_due_order():
    s = ManualScheduler()
    ran = []
    s.call_later(2, lambda: ran.append("b"))
    s.call_later(1, lambda: ran.append("a"))
    s.call_later(2, lambda: ran.append("c"))
    assert s.next_due() == 1
    assert s.advance(1.5) == 1
    assert s.advance(1) == 2
    assert ran == ["a", "b", "c"]
    assert s.now() == 2.5
    assert s.next_due() is None


def test_cancelled_task_never_runs():
    s = ManualScheduler()
    ran = []
    h = s.call_later(1, lambda: ran.append(1))
    assert s.pending() == 1
    h.cancel()
    assert s.pending() == 0
    assert s.advance(5) == 0
    assert ran == []


def test_callback_may_schedule_follow_up():
    s = ManualScheduler()
    ran = []
    s.call_later(1, lambda: s.call_later(1, lambda: ran.append(s.now())))
    s.advance(3)
    assert ran == [2]
