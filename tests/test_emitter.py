"""
Tests for detection publication.
"""

import pytest

from hand_sign_detection.core.emitter import DetectionEmitter
from hand_sign_detection.core.voter import CooldownTable, DetectionResult


def result(label="v_sign", at=5.0):
    return DetectionResult(label=label, confidence=0.9, observed_at=at, source="rules", votes=3)


def test_emit_delivers_and_records_cooldown(collected):
    cooldowns = CooldownTable(1500)
    emitter = DetectionEmitter(collected, cooldowns)

    assert emitter.emit(result())
    assert collected.results == [result()]
    assert cooldowns.last_emission("v_sign") == 5.0
    assert cooldowns.last_label == "v_sign"
    assert emitter.emitted == 1


def test_failing_sink_is_contained():
    def sink(_):
        raise RuntimeError("display went away")

    cooldowns = CooldownTable(1500)
    emitter = DetectionEmitter(sink, cooldowns)

    assert not emitter.emit(result())
    assert emitter.failed == 1
    # still rate-limited
    assert not cooldowns.allows("v_sign", 5.5)


def test_sink_must_be_callable():
    with pytest.raises(TypeError):
        DetectionEmitter("not a sink", CooldownTable(1500))


def test_result_to_dict():
    assert result().to_dict() == {
        "label": "v_sign",
        "confidence": 0.9,
        "observed_at": 5.0,
        "source": "rules",
        "votes": 3,
    }


def test_record_and_publish_are_separate_steps(collected):
    cooldowns = CooldownTable(1500)
    emitter = DetectionEmitter(collected, cooldowns)

    emitter.record(result())

    assert cooldowns.last_label == "v_sign"
    assert collected.results == []

    assert emitter.publish(result())
    assert collected.results == [result()]
