from unipager_client.history import LogEntry, LogLevel
from unipager_client.state import StateReconciler, default_telemetry


def test_initial_state():
    state = StateReconciler()
    assert state.version == ""
    assert state.config is None
    assert state.telemetry == {"node": {}, "config": {}, "messages": {}}
    assert state.timeslot == 0
    assert len(state.log) == 0
    assert len(state.messages) == 0


def test_default_telemetry_is_fresh_each_call():
    first = default_telemetry()
    first["node"]["cpu"] = 1
    assert default_telemetry() == {"node": {}, "config": {}, "messages": {}}


def test_update_replaces_top_level_key_wholesale():
    state = StateReconciler()
    state.replace_telemetry({"node": {"cpu": 5, "mem": 1}, "config": {}, "messages": {}})
    state.update_telemetry({"node": {"cpu": 10}})
    assert state.telemetry == {"node": {"cpu": 10}, "config": {}, "messages": {}}


def test_update_only_touches_named_keys():
    state = StateReconciler()
    state.update_telemetry({"messages": {"queued": 2}})
    assert state.telemetry == {"node": {}, "config": {}, "messages": {"queued": 2}}


def test_snapshot_replaces_everything():
    state = StateReconciler()
    state.update_telemetry({"node": {"cpu": 1}})
    state.replace_telemetry({"config": {"ok": True}})
    assert state.telemetry == {"config": {"ok": True}}


def test_reset_telemetry():
    state = StateReconciler()
    state.replace_telemetry({"node": {"cpu": 99}, "extra": 1})
    state.reset_telemetry()
    assert state.telemetry == {"node": {}, "config": {}, "messages": {}}


def test_config_is_replaced_not_merged():
    state = StateReconciler()
    state.replace_config({"ptt": {"pin": 1}, "master": {"call": "A"}})
    state.replace_config({"audio": {"level": 3}})
    assert state.config == {"audio": {"level": 3}}


def test_replacing_config_twice_is_idempotent():
    doc = {"master": {"call": "DB0ABC", "port": 43434}}
    once = StateReconciler()
    once.replace_config(doc)
    twice = StateReconciler()
    twice.replace_config(doc)
    twice.replace_config(doc)
    assert once.config == twice.config


def test_snapshot_is_a_copy():
    state = StateReconciler()
    state.replace_config({"master": {"call": "A"}})
    state.add_log(LogEntry(LogLevel.WARN, "careful"))
    state.add_message({"addr": 8})

    snap = state.snapshot()
    snap["config"]["master"]["call"] = "B"
    snap["messages"][0]["addr"] = 9

    assert state.config == {"master": {"call": "A"}}
    assert state.messages[0] == {"addr": 8}
    assert snap["log"][0]["level"] == "warn"
