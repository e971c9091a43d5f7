import pytest

from buildinfo_engine.env_utils import (diff_only_left, get_vcs_revision, parse_matrix_params, replace_macro,
                                        sanitize_build_name)


@pytest.mark.parametrize("name, expected", [
    ("my/project", "my :: project"),
    ("a/b/c", "a :: b :: c"),
    ("plain", "plain"),
])
def test_sanitize_build_name(name, expected):
    sanitized = sanitize_build_name(name)
    assert sanitized == expected
    assert "/" not in sanitized
    assert sanitize_build_name(sanitized) == sanitized


def test_none_passes_through_unchanged():
    assert sanitize_build_name(None) is None
    assert replace_macro(None, {"A": "1"}) is None


def test_vcs_revision_prefers_svn_then_git_then_perforce():
    env = {"SVN_REVISION": "1234", "GIT_COMMIT": "abc123", "P4_CHANGELIST": "99"}
    assert get_vcs_revision(env) == "1234"
    env["SVN_REVISION"] = "  "
    assert get_vcs_revision(env) == "abc123"
    env["GIT_COMMIT"] = ""
    assert get_vcs_revision(env) == "99"
    del env["P4_CHANGELIST"]
    assert get_vcs_revision(env) is None


def test_diff_only_left_keeps_absent_and_changed_entries():
    left = {"A": "1", "B": "2", "C": "3"}
    right = {"A": "1", "B": "changed"}
    assert diff_only_left(left, right) == {"B": "2", "C": "3"}


def test_diff_only_left_disjoint_and_identical():
    left = {"A": "1"}
    assert diff_only_left(left, {"Z": "9"}) == left
    assert diff_only_left(left, dict(left)) == {}


def test_replace_macro_expands_known_variables_only():
    env = {"BUILD_NUMBER": "42", "JOB": "web"}
    assert replace_macro("${JOB}-$BUILD_NUMBER", env) == "web-42"
    assert replace_macro("$UNKNOWN/${ALSO_UNKNOWN}", env) == "$UNKNOWN/${ALSO_UNKNOWN}"


def test_parse_matrix_params():
    assert parse_matrix_params("a=1; b=2", {}) == {"a": "1", "b": "2"}


def test_parse_matrix_params_drops_malformed_pairs():
    assert parse_matrix_params("badpair; c=3", {}) == {"c": "3"}
    assert parse_matrix_params("d=; =e", {}) == {}


def test_parse_matrix_params_substitutes_values():
    assert parse_matrix_params("release=${VERSION}", {"VERSION": "1.2"}) == {"release": "1.2"}


def test_parse_matrix_params_splits_on_first_equals():
    assert parse_matrix_params("expr=a=b", {}) == {"expr": "a=b"}


def test_parse_matrix_params_blank():
    assert parse_matrix_params("  ", {}) == {}
    assert parse_matrix_params(None, {}) == {}
