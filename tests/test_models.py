from datetime import timezone

import pytest

from buildinfo_engine.models import BuildContext, UpstreamCause, UserCause, default_system_properties


def test_from_dict_round_trips_the_serialized_fields():
    data = {
        "job_name": "folder/job",
        "build_number": "12",
        "start_time": "2024-03-01T12:00:00+00:00",
        "workspace": "/ws",
        "causes": [{"type": "upstream", "upstream_project": "parent", "upstream_build": 3},
                   {"type": "user", "user_name": "alice"}],
        "build_variables": {"A": "1"},
        "log_rotator": {"days_to_keep": 5},
        "builds": [{"number": 11, "keep_forever": True}, {"number": 10}],
        "agent_name": "linux-1",
    }
    context = BuildContext.from_dict(data)

    assert context.build_number == 12
    assert context.start_time.tzinfo is not None
    assert context.get_upstream_cause() == UpstreamCause("parent", 3)
    assert context.get_user_cause_principal("auto") == "alice"
    assert context.log_rotator.days_to_keep == 5
    assert context.log_rotator.num_to_keep == -1
    assert [b.keep_forever for b in context.get_builds()] == [True, False]
    assert context.is_remote()
    assert BuildContext.from_dict(context.to_dict()).to_dict() == context.to_dict()


def test_naive_start_time_is_taken_as_utc():
    context = BuildContext.from_dict({"job_name": "j", "build_number": 1, "start_time": "2024-03-01T12:00:00"})
    assert context.start_time.tzinfo == timezone.utc


def test_user_cause_principal_defaults():
    context = BuildContext.from_dict({"job_name": "j", "build_number": 1})
    assert context.get_user_cause_principal() is None
    assert context.get_user_cause_principal("auto") == "auto"
    context.causes.append(UserCause("bob"))
    assert context.get_user_cause_principal("auto") == "bob"
    assert not context.is_remote()


def test_unknown_cause_type_is_rejected():
    with pytest.raises(ValueError, match="cause type"):
        BuildContext.from_dict({"job_name": "j", "build_number": 1, "causes": [{"type": "timer"}]})


def test_missing_identity_is_rejected():
    with pytest.raises(ValueError):
        BuildContext.from_dict({"job_name": "j"})


def test_default_system_properties_use_dotted_names():
    properties = default_system_properties()
    assert {"os.name", "os.arch", "python.version", "user.name"} <= set(properties)
