from unipager_client.frames import (
    AuthenticatedFrame,
    ConfigFrame,
    LogFrame,
    MessageFrame,
    TelemetryFrame,
    TelemetryUpdateFrame,
    TimeslotFrame,
    UnknownFrame,
    VersionFrame,
    parse_frame,
)
from unipager_client.history import LogLevel


def test_malformed_frames_become_empty():
    assert parse_frame("{not json") == []
    assert parse_frame("[1, 2, 3]") == []
    assert parse_frame("null") == []
    assert parse_frame(b"\xff\xfe") == []


def test_deeply_nested_frame_becomes_empty():
    raw = '{"Config":' + "[" * 200000 + "]" * 200000 + "}"
    assert parse_frame(raw, max_size=10**7) == []


def test_every_key_is_decoded_in_order():
    frames = parse_frame(
        '{"Version": "1.2.3", "Timeslot": 7, "Authenticated": true, "Log": [1, "bad"]}'
    )
    assert [type(f) for f in frames] == [VersionFrame, TimeslotFrame, AuthenticatedFrame, LogFrame]
    assert frames[0].version == "1.2.3"
    assert frames[1].timeslot == 7
    assert frames[2].authenticated is True
    assert frames[3].entry.level is LogLevel.ERROR


def test_snapshot_and_update_variants():
    frames = parse_frame(
        '{"Config": {"master": {"call": "DB0ABC"}}, "Telemetry": {"node": {}},'
        ' "TelemetryUpdate": {"node": {"cpu": 1}}, "Message": {"id": 1}}'
    )
    assert frames == [
        ConfigFrame({"master": {"call": "DB0ABC"}}),
        TelemetryFrame({"node": {}}),
        TelemetryUpdateFrame({"node": {"cpu": 1}}),
        MessageFrame({"id": 1}),
    ]


def test_unknown_key_does_not_hide_siblings():
    frames = parse_frame('{"Bogus": 1, "Timeslot": 2}')
    assert frames == [UnknownFrame("Bogus", 1), TimeslotFrame(2)]


def test_unusable_payloads_become_unknown():
    frames = parse_frame(
        '{"Config": [1], "Telemetry": "x", "TelemetryUpdate": null,'
        ' "Timeslot": "3", "Authenticated": 1, "Version": 2}'
    )
    assert all(isinstance(f, UnknownFrame) for f in frames)
    assert [f.kind for f in frames] == [
        "Config",
        "Telemetry",
        "TelemetryUpdate",
        "Timeslot",
        "Authenticated",
        "Version",
    ]


def test_timeslot_rejects_bool():
    assert parse_frame('{"Timeslot": true}') == [
        UnknownFrame("Timeslot", True, "timeslot must be an integer")
    ]


def test_oversize_frame_ignored():
    assert parse_frame('{"Message": "' + "x" * 64 + '"}', max_size=32) == []
