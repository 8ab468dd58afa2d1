import cv2
import numpy as np
import pytest

from conftest import solid
from keyer import io_background
from keyer.background import NoBackground, StaticImageBackground, VideoBackground
from keyer.errors import ConfigurationError
from keyer.io_background import open_background


def test_missing_path_means_no_background() -> None:
    assert isinstance(open_background(None), NoBackground)
    with pytest.raises(ConfigurationError):
        open_background("/nonexistent/bg.png")


def test_image_background_is_loaded_as_rgb(tmp_path) -> None:
    path = tmp_path / "bg.png"
    cv2.imwrite(str(path), solid(3, 5, (255, 0, 0)))  # BGR on disk
    source = open_background(str(path))
    assert isinstance(source, StaticImageBackground)
    source.open()
    assert source.next_frame()[0, 0].tolist() == [0, 0, 255]


def test_video_background_is_decoded_again_on_loop(tmp_path, monkeypatch) -> None:
    path = tmp_path / "bg.mp4"
    path.write_bytes(b"")
    decodes = []

    def fake_frames(p):
        decodes.append(p)
        return iter([solid(2, 2, (i, 0, 0)) for i in range(3)])

    monkeypatch.setattr(io_background, "iter_video_frames", fake_frames)
    source = open_background(str(path), "loop", max_cached=0)
    assert isinstance(source, VideoBackground)
    source.open()
    reds = [int(source.next_frame()[0, 0, 0]) for _ in range(7)]
    assert reds == [0, 1, 2, 0, 1, 2, 0]
    assert decodes == [str(path)] * 3
    assert source.cached_frames == 0


def test_unreadable_video_background_fails_on_open(tmp_path) -> None:
    path = tmp_path / "broken.mp4"
    path.write_bytes(b"not a video")
    source = open_background(str(path))
    with pytest.raises(ConfigurationError):
        source.open()
