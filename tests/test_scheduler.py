from framecraft.scheduler import Debouncer, FrameScheduler


def test_debounce_latest_wins(clock):
    calls = []
    debouncer = Debouncer(clock)
    debouncer.schedule("overlay", lambda: calls.append("first"), 200)
    clock.advance(100)
    debouncer.schedule("overlay", lambda: calls.append("second"), 200)

    clock.advance(150)
    assert debouncer.poll() == []
    clock.advance(60)
    assert debouncer.poll() == ["overlay"]
    assert calls == ["second"]
    assert debouncer.pending() == []


def test_debounce_runs_at_most_once_per_quiet_period(clock):
    calls = []
    debouncer = Debouncer(clock)
    for _ in range(10):
        debouncer.schedule("overlay", lambda: calls.append(1), 200)
        clock.advance(50)
    clock.advance(500)
    debouncer.poll()
    debouncer.poll()
    assert calls == [1]


def test_independent_names_run_in_deadline_order(clock):
    calls = []
    debouncer = Debouncer(clock)
    debouncer.schedule("slow", lambda: calls.append("slow"), 800)
    debouncer.schedule("fast", lambda: calls.append("fast"), 200)
    clock.advance(200)
    assert debouncer.poll() == ["fast"]
    assert debouncer.pending() == ["slow"]
    assert debouncer.flush() == ["slow"]
    assert calls == ["fast", "slow"]


def test_failing_callback_is_logged_not_raised(clock, caplog):
    calls = []
    debouncer = Debouncer(clock)

    def boom():
        raise RuntimeError("render failed")

    debouncer.schedule("a", boom, 10)
    debouncer.schedule("b", lambda: calls.append("b"), 20)
    clock.advance(50)
    assert debouncer.poll() == ["a", "b"]
    assert calls == ["b"]
    assert "render failed" in caplog.text


def test_cancel(clock):
    debouncer = Debouncer(clock)
    debouncer.schedule("a", lambda: None, 10)
    assert debouncer.cancel("a")
    assert not debouncer.cancel("a")
    assert debouncer.pending() == []
    assert debouncer.flush() == []


def test_frame_scheduler_coalesces_requests():
    frames = []
    scheduler = FrameScheduler()
    assert scheduler.request(lambda: frames.append(1))
    assert not scheduler.request(lambda: frames.append(2))
    assert scheduler.has_pending
    assert scheduler.tick()
    assert frames == [1]
    assert not scheduler.tick()
    assert scheduler.frames_rendered == 1
