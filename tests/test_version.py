import platform

from chatlogkit.version import VERSION, get_more


def test_short_version_line():
    line = get_more(False)
    assert line.startswith(f"version {VERSION} ")
    assert line.endswith("\n")
    assert line.count("\n") == 1
    assert platform.python_version() in line


def test_short_version_has_os_and_arch():
    fields = get_more(False).split()
    assert len(fields) == 4
    assert "/" in fields[3]


def test_module_details_are_indented():
    text = get_more(True)
    assert text.endswith("\n")
    lines = text.splitlines()
    assert len(lines) > 1
    assert all(line.startswith("\t") for line in lines)
    assert VERSION in text


def test_default_version():
    assert get_more(False).split()[1] == "(dev)"