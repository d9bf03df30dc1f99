import pytest

from cep_lookup import CacheHitEvent, EventEmitter, LookupEvent, SuccessEvent


def test_on_emit_off():
    emitter = EventEmitter()
    seen = []
    listener = seen.append

    emitter.on("cache:hit", listener)
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="01001000"))
    assert seen == [CacheHitEvent(cep="01001000")]

    emitter.off(LookupEvent.CACHE_HIT, listener)
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="01001000"))
    assert len(seen) == 1
    assert emitter.listener_count("cache:hit") == 0


def test_listeners_are_scoped_to_their_event():
    emitter = EventEmitter()
    seen = []
    emitter.on("success", seen.append)
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="01001000"))
    assert seen == []


def test_unknown_event_name_rejected():
    emitter = EventEmitter()
    with pytest.raises(ValueError, match="Unknown event"):
        emitter.on("cache:miss", print)


def test_off_unknown_listener_is_noop():
    emitter = EventEmitter()
    emitter.off("failure", print)


def test_payload_type_is_checked():
    emitter = EventEmitter()
    with pytest.raises(TypeError):
        emitter.emit(LookupEvent.SUCCESS, CacheHitEvent(cep="01001000"))


def test_failing_listener_does_not_stop_others(caplog):
    emitter = EventEmitter()
    seen = []

    def broken(payload):
        raise RuntimeError("boom")

    emitter.on("cache:hit", broken)
    emitter.on("cache:hit", seen.append)
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="01001000"))

    assert len(seen) == 1
    assert "boom" in caplog.text


def test_listener_can_unsubscribe_itself():
    emitter = EventEmitter()
    calls = []

    def once(payload):
        calls.append(payload)
        emitter.off("cache:hit", once)

    emitter.on("cache:hit", once)
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="1"))
    emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep="2"))
    assert len(calls) == 1
