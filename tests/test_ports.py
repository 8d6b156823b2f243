import pytest

from portstride.models import ConfigError
from portstride.ports import parse_port, partition, stride_ports


@pytest.mark.parametrize(
    "start,end,workers",
    [
        (1, 10, 3),
        (80, 82, 2),
        (1, 1, 1),
        (1, 1, 8),
        (1000, 1999, 7),
        (65530, 65535, 4),
        (1, 65535, 4),
    ],
)
def test_partition_is_complete_and_disjoint(start, end, workers):
    parts = partition(start, end, workers)

    assert len(parts) == workers
    seen = []
    for r in parts:
        seen.extend(r)
    assert sorted(seen) == list(range(start, end + 1))
    assert len(seen) == len(set(seen))


def test_stride_assignment():
    assert list(stride_ports(1, 10, 3, 0)) == [1, 4, 7, 10]
    assert list(stride_ports(1, 10, 3, 1)) == [2, 5, 8]
    assert list(stride_ports(1, 10, 3, 2)) == [3, 6, 9]


def test_stride_matches_formula():
    start, end, workers = 20, 97, 6
    for i in range(workers):
        expected = []
        k = 0
        while start + i + k * workers <= end:
            expected.append(start + i + k * workers)
            k += 1
        assert list(stride_ports(start, end, workers, i)) == expected


def test_more_workers_than_ports_leaves_some_idle():
    assert [list(r) for r in partition(5, 6, 4)] == [[5], [6], [], []]


def test_stride_rejects_bad_index():
    with pytest.raises(ValueError):
        stride_ports(1, 10, 3, 3)
    with pytest.raises(ValueError):
        stride_ports(1, 10, 3, -1)


def test_stride_rejects_zero_workers():
    with pytest.raises(ConfigError):
        stride_ports(1, 10, 0, 0)


def test_parse_port():
    assert parse_port("80", "start") == 80
    assert parse_port(" 443 ", "end") == 443


@pytest.mark.parametrize("value", ["abc", "", " ", "1.5", "-3", "+80", "8_0", "٨٠", "８０"])
def test_parse_port_rejects_garbage(value):
    with pytest.raises(ConfigError, match="failed to parse end port number"):
        parse_port(value, "end")
