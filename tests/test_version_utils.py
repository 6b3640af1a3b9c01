from context_deploy.utils.version_utils import is_compatible_format, parse_version


def test_parse_version():
    assert parse_version("1.2").major == 1
    assert parse_version("not a version") is None


def test_same_major_is_compatible():
    assert is_compatible_format("1.0", "1.3")
    assert is_compatible_format("1.4", "1.0")


def test_other_major_or_garbage_is_not():
    assert not is_compatible_format("2.0", "1.0")
    assert not is_compatible_format("", "1.0")
