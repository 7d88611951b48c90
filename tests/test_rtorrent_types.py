import pytest

from vibetorrent.rtorrent.types import (
    SystemInfo,
    Torrent,
    TorrentFile,
    Tracker,
    compute_progress,
    derive_state,
)


@pytest.mark.parametrize(
    "active,size,completed,expected",
    [
        (0, 100, 10, "paused"),
        (0, 100, 100, "paused"),
        (1, 100, 10, "downloading"),
        (1, 100, 100, "seeding"),
        (1, 0, 0, "seeding"),
        (True, 100, 150, "seeding"),
    ],
)
def test_derive_state(active, size, completed, expected):
    assert derive_state(active, size, completed) == expected


def test_compute_progress():
    assert compute_progress(0, 0) == 0.0
    assert compute_progress(-5, 3) == 0.0
    assert compute_progress(200, 50) == 25.0


def test_torrent_eta():
    assert Torrent(hash="A", size=1000, completed=400, download_rate=100).eta == 6.0
    assert Torrent(hash="A", size=1000, completed=400).eta is None
    assert Torrent(hash="A", size=1000, completed=1200, download_rate=10).eta == 0


def test_to_dict_includes_progress():
    data = Torrent(hash="A", name="x", size=4, completed=1).to_dict()
    assert data["progress"] == 25.0
    assert data["hash"] == "A"
    assert TorrentFile(name="f", size=2, completed=2).to_dict()["progress"] == 100.0
    assert Tracker(url="udp://t").to_dict()["enabled"] is False
    assert SystemInfo(hostname="h").to_dict()["hostname"] == "h"
